"""CLI commands implemented with click.

The command group plays the part of the browser popup: it builds the
Environment once (store backend, initial URL, error reporter) and every
command works through a Session.
"""
from __future__ import annotations
import asyncio, click
from typing import Optional
from config.settings import STORE_BACKEND, IGNORE_MAX_LENGTH
from src.lib.crypto import reference_code
from src.lib.utils import StoreError, create_store, normalize_site
from src.lib.session import Environment, Session

def _report(error: BaseException) -> None:
	click.echo(f'Error: {error}')

def _session(ctx: click.Context, url: Optional[str] = None) -> Session:
	async def initial_url() -> Optional[str]:
		return url
	env = Environment(store=ctx.obj['store'], get_initial_url=initial_url, on_error=_report)
	return Session(env)

def _site(raw: str) -> str:
	return normalize_site(raw) if '://' in raw else raw

@click.group()
@click.option('--store', 'store_kind', type=click.Choice(['file', 'memory']), default=STORE_BACKEND,
	envvar='PASSWORDS101_STORE', help='Where per-site settings are kept.')
@click.pass_context
def cli(ctx, store_kind):
	"""passwords101: regenerate per-site passwords from one master password."""
	try:
		ctx.obj = {'store': create_store(store_kind)}
	except StoreError as e:
		raise click.ClickException(str(e))

@cli.command()
@click.argument('site', required=False, default='')
@click.option('--master', prompt='Master password', hide_input=True)
@click.option('--suffix', default=None, help='Special characters appended to the password.')
@click.option('--max-length', type=int, default=None, help='Cap the password length (0 or less: no cap).')
@click.option('--plain', is_flag=True, help='Ignore stored settings; no suffix, no length cap.')
@click.option('--url', envvar='PASSWORDS101_URL', default=None, help='Take the site from this URL when SITE is omitted.')
@click.pass_context
def generate(ctx, site, master, suffix, max_length, plain, url):
	"""Generate the password for SITE (a domain or full URL)."""
	async def run():
		s = _session(ctx, url)
		await s.start(master)
		target = _site(site) if site else s.site
		if not target:
			click.echo('Error: no site given')
			return None
		special, limit = '', IGNORE_MAX_LENGTH
		if suffix is not None or max_length is not None:
			special = suffix if suffix is not None else ''
			limit = max_length if max_length is not None else IGNORE_MAX_LENGTH
		elif not plain:
			stored = await s.settings_for(target)
			if stored is not None:
				special, limit = stored.special_char, stored.max_length
		password = await s.generate_password(target, master, special, limit, busy=lambda t: click.echo(t, err=True))
		click.echo(f'Site: {target}  (reference code {s.reference_code})', err=True)
		return password
	password = asyncio.run(run())
	if password is not None:
		click.echo(password)

@cli.command('reference-code')
@click.option('--master', prompt='Master password', hide_input=True, default='', show_default=False)
def reference_code_cmd(master):
	"""Show the reference code for a master password."""
	click.echo(reference_code(master))

@cli.command('settings')
@click.argument('site')
@click.pass_context
def settings_cmd(ctx, site):
	"""Show stored settings for SITE."""
	target = _site(site)
	found = asyncio.run(_session(ctx).settings_for(target))
	if found is None:
		click.echo(f'{target}: no special settings')
		return
	limit = found.max_length if found.has_limit else 'none'
	click.echo(f'{target}: suffix {found.special_char!r}, max length {limit}')

@cli.command('list')
@click.pass_context
def list_sites(ctx):
	"""List sites with stored settings."""
	for site in asyncio.run(_session(ctx).refresh_suggestions()):
		click.echo(site)

@cli.command('export')
@click.pass_context
def export_cmd(ctx):
	"""Print all stored settings as JSON."""
	text = asyncio.run(_session(ctx).export_settings())
	if text is not None:
		click.echo(text)

@cli.command('import')
@click.argument('source', type=click.File('r', encoding='utf-8'), default='-')
@click.pass_context
def import_cmd(ctx, source):
	"""Import settings exported as JSON, or in the old backslash format."""
	count = asyncio.run(_session(ctx).import_settings(source.read().strip()))
	click.echo(f'Imported {count} entries.')

@cli.command('normalize')
@click.argument('url')
def normalize_cmd(url):
	"""Show the site identifier used for URL."""
	click.echo(normalize_site(url))

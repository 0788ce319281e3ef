"""Host-facing session: environment wiring, async generation, debounced reference code.

A host (CLI, GUI, browser bridge) builds one Environment at startup and passes it
to Session. Store and host-context failures are routed to the environment's
error reporter; they never propagate out of the session.
"""
from __future__ import annotations
import asyncio, logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional
from config.settings import (
	IGNORE_MAX_LENGTH, DEFAULT_SPECIAL_CHAR, BUSY_TEXT, NO_PASSWORD_PLACEHOLDER, REFERENCE_CODE_DELAY
)
from .crypto import generate, reference_code
from .utils import (
	PreferenceStore, PasswordEntrySettings, ImportFormatError, normalize_site, parse_import, dump_settings
)

log = logging.getLogger(__name__)

ErrorReporter = Callable[[BaseException], None]

class EnvironmentNotInitialised(RuntimeError):
	pass

async def no_initial_url() -> Optional[str]:
	return None

@dataclass
class Environment:
	store: PreferenceStore
	get_initial_url: Callable[[], Awaitable[Optional[str]]] = no_initial_url
	on_error: Optional[ErrorReporter] = None

	def report(self, error: BaseException) -> None:
		if self.on_error is not None:
			self.on_error(error)
		else:
			log.error('passwords101 error: %s', error)


class ReferenceCodeTrigger:
	"""Recompute the reference code once edits to the master secret go quiet.

	Each change resets the timer, so a burst of keystrokes yields a single
	computation `delay` seconds after the last one. Must be driven from a
	running event loop.
	"""

	def __init__(self, display: Callable[[str], None], delay: float = REFERENCE_CODE_DELAY):
		self._display = display
		self._delay = delay
		self._handle: Optional[asyncio.TimerHandle] = None

	@property
	def pending(self) -> bool:
		return self._handle is not None

	def bootstrap(self, master: str) -> None:
		self.cancel()
		self._update(master)

	def on_master_secret_changed(self, master: str) -> None:
		self.cancel()
		loop = asyncio.get_running_loop()
		self._handle = loop.call_later(self._delay, self._update, master)

	def cancel(self) -> None:
		if self._handle is not None:
			self._handle.cancel()
			self._handle = None

	def _update(self, master: str) -> None:
		self._handle = None
		self._display(reference_code(master))


class Session:
	def __init__(self, env: Optional[Environment], display_reference_code: Optional[Callable[[str], None]] = None):
		if env is None:
			raise EnvironmentNotInitialised('Session needs an Environment; build one at startup')
		self.env = env
		self.site = ''
		self.suggestions: List[str] = []
		self.reference_code = NO_PASSWORD_PLACEHOLDER
		self.reference = ReferenceCodeTrigger(display_reference_code or self._set_reference_code)

	def _set_reference_code(self, code: str) -> None:
		self.reference_code = code

	async def start(self, master: str = '') -> None:
		"""Prefill the site from host context, load suggestions, show the first reference code."""
		try:
			url = await self.env.get_initial_url()
			if url:
				self.site = normalize_site(url)
		except Exception as e:
			self.env.report(e)
		await self.refresh_suggestions()
		self.reference.bootstrap(master)

	async def refresh_suggestions(self) -> List[str]:
		try:
			self.suggestions = sorted(await self.env.store.get_all())
		except Exception as e:
			self.env.report(e)
		return self.suggestions

	async def store_input(self, site: str, special_char: str, max_length: int) -> None:
		if not site:
			return
		try:
			await self.env.store.save(site, special_char, max_length)
		except Exception as e:
			self.env.report(e)

	async def generate_password(self, site: str, master: str, special_char: str = '',
			max_length: int = IGNORE_MAX_LENGTH, busy: Optional[Callable[[str], None]] = None) -> str:
		"""Persist the site's settings, then derive the password off the event loop."""
		await self.store_input(site, special_char, max_length)
		if busy is not None:
			busy(BUSY_TEXT)
		loop = asyncio.get_running_loop()
		return await loop.run_in_executor(None, generate, site, master, special_char, max_length)

	async def settings_for(self, site: str) -> Optional[PasswordEntrySettings]:
		"""Stored settings to prefill for `site`, or None when it has nothing special."""
		try:
			found = await self.env.store.get_for_input(site)
		except Exception as e:
			self.env.report(e)
			return None
		if not found:
			return None
		settings = next(iter(found.values()))
		if settings.is_default():
			return None
		if not settings.special_char:
			settings = PasswordEntrySettings(DEFAULT_SPECIAL_CHAR, settings.max_length)
		return settings

	async def export_settings(self) -> Optional[str]:
		try:
			return dump_settings(await self.env.store.get_all())
		except Exception as e:
			self.env.report(e)
			return None

	async def import_settings(self, text: str) -> int:
		"""Import exported JSON or legacy triples; returns the number of records saved."""
		if not text:
			return 0
		try:
			entries: Dict[str, PasswordEntrySettings] = parse_import(text)
		except ImportFormatError as e:
			self.env.report(e)
			return 0
		saved = 0
		for site, settings in entries.items():
			if not site:
				log.warning('Skipping imported record without a site')
				continue
			try:
				await self.env.store.save(site, settings.special_char, settings.max_length)
				saved += 1
			except Exception as e:
				self.env.report(e)
		await self.refresh_suggestions()
		return saved

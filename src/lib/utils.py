"""Utility layer: per-site settings, preference stores, import/export.

Stores:
- JsonFileStore keeps the whole site -> settings mapping in one JSON file.
- MemoryStore keeps it in process memory.
Both expose the same coroutine API; the host picks one at startup via create_store().
"""
from __future__ import annotations
import asyncio, json, os, re, math, logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional
from config.settings import DEFAULT_STORE_PATH, IGNORE_MAX_LENGTH

log = logging.getLogger(__name__)

SPECIAL_CHAR_KEY = 'specialChar'
MAX_LENGTH_KEY = 'maxLength'

class StoreError(Exception): ...
class ImportFormatError(Exception): ...

def _as_max_length(value: Any) -> int:
	if isinstance(value, bool) or not isinstance(value, (int, float)):
		return IGNORE_MAX_LENGTH
	if not math.isfinite(value) or value <= 0:
		return IGNORE_MAX_LENGTH
	return int(value)

@dataclass
class PasswordEntrySettings:
	special_char: str = ''
	max_length: int = IGNORE_MAX_LENGTH

	@property
	def has_limit(self) -> bool:
		return self.max_length > 0

	def is_default(self) -> bool:
		return not self.special_char and not self.has_limit

	def to_dict(self) -> Dict[str, Any]:
		out: Dict[str, Any] = {SPECIAL_CHAR_KEY: self.special_char}
		if self.has_limit:
			out[MAX_LENGTH_KEY] = self.max_length
		return out

	@classmethod
	def from_dict(cls, raw: Any) -> 'PasswordEntrySettings':
		if not isinstance(raw, dict):
			return cls()
		special = raw.get(SPECIAL_CHAR_KEY)
		return cls(
			special_char=special if isinstance(special, str) else '',
			max_length=_as_max_length(raw.get(MAX_LENGTH_KEY))
		)

def normalize_site(url: str) -> str:
	"""Reduce a URL to its last two host labels, lowercased.

	`https://accounts.sub.example.co.uk/login` becomes `co.uk`; multi-part
	TLDs are not special-cased so that keys match the browser clients.
	"""
	marker = url.find('://')
	start = marker + 3 if marker >= 0 else 0
	end = url.find('/', start)
	domain = url[start:] if end < 0 else url[start:end]
	last = domain.rfind('.')
	cut = domain.rfind('.', 0, max(last, 1))
	return domain[cut + 1:].lower()

_LEADING_INT = re.compile(r'\s*([+-]?\d+)')

def _parse_int(token: str) -> int:
	m = _LEADING_INT.match(token)
	return int(m.group(1)) if m else IGNORE_MAX_LENGTH

def parse_legacy(text: str) -> Dict[str, PasswordEntrySettings]:
	"""Parse `site\\suffix\\maxLength\\` triples, e.g. `google.com\\!\\5\\wikipedia.com\\\\-1\\`."""
	values = text.split('\\')
	if len(values) % 3 == 1 and values[-1] == '':
		values.pop()
	if len(values) % 3:
		raise ImportFormatError(f'Legacy data has {len(values)} fields, expected groups of 3')
	entries: Dict[str, PasswordEntrySettings] = {}
	for i in range(0, len(values), 3):
		site, special, max_length = values[i:i + 3]
		entries[site] = PasswordEntrySettings(special, _parse_int(max_length))
	return entries

def parse_import(text: str) -> Dict[str, PasswordEntrySettings]:
	"""Parse exported JSON, falling back to the legacy backslash format."""
	try:
		parsed = json.loads(text)
	except ValueError:
		return parse_legacy(text)
	if not isinstance(parsed, dict):
		raise ImportFormatError('Expected a JSON object mapping sites to settings')
	return {str(k): PasswordEntrySettings.from_dict(v) for k, v in parsed.items()}

def dump_settings(entries: Dict[str, PasswordEntrySettings]) -> str:
	return json.dumps({k: v.to_dict() for k, v in entries.items()})


class PreferenceStore(ABC):
	"""Per-site settings keyed by lowercased site identifier."""

	# Stores backed by blocking I/O run their reads and writes in the default executor
	blocking = False

	@abstractmethod
	def _read(self) -> Dict[str, Any]: ...

	@abstractmethod
	def _write(self, data: Dict[str, Any]) -> None: ...

	async def _call(self, fn, *args):
		if not self.blocking:
			return fn(*args)
		loop = asyncio.get_running_loop()
		return await loop.run_in_executor(None, fn, *args)

	def _upsert(self, key: str, record: Dict[str, Any]) -> None:
		data = self._read()
		data[key] = record
		self._write(data)

	async def get_all(self) -> Dict[str, PasswordEntrySettings]:
		data = await self._call(self._read)
		return {k: PasswordEntrySettings.from_dict(v) for k, v in data.items()}

	async def get_for_input(self, site: str) -> Dict[str, PasswordEntrySettings]:
		key = site.lower()
		data = await self._call(self._read)
		if key not in data:
			return {}
		return {key: PasswordEntrySettings.from_dict(data[key])}

	async def save(self, site: str, special_char: str, max_length: int) -> None:
		"""Upsert the record for `site`; a max length <= 0 removes the limit.

		Nothing is written when the existing records cannot be read.
		"""
		key = site.lower()
		record = PasswordEntrySettings(special_char, max_length if max_length > 0 else IGNORE_MAX_LENGTH).to_dict()
		await self._call(self._upsert, key, record)
		log.debug('Saved settings for %s', key)


class MemoryStore(PreferenceStore):
	def __init__(self, initial: Optional[Dict[str, Any]] = None):
		self._data: Dict[str, Any] = {k.lower(): dict(v) for k, v in (initial or {}).items()}

	def _read(self) -> Dict[str, Any]:
		return {k: dict(v) for k, v in self._data.items()}

	def _write(self, data: Dict[str, Any]) -> None:
		self._data = data


class JsonFileStore(PreferenceStore):
	blocking = True

	def __init__(self, path: Path | None = None):
		# Resolve path dynamically to honor environment overrides in tests
		if path is not None:
			self.path = Path(path)
		else:
			env_path = os.environ.get('PASSWORDS101_STORE_PATH')
			self.path = Path(env_path) if env_path else DEFAULT_STORE_PATH

	def exists(self) -> bool:
		return self.path.exists() and self.path.stat().st_size > 0

	def _read(self) -> Dict[str, Any]:
		try:
			if not self.exists():
				return {}
			parsed = json.loads(self.path.read_text(encoding='utf-8'))
		except (OSError, ValueError) as e:
			raise StoreError(f'Cannot read {self.path}: {e}') from e
		if not isinstance(parsed, dict):
			raise StoreError(f'Corrupt settings file {self.path}')
		return parsed

	def _write(self, data: Dict[str, Any]) -> None:
		tmp = self.path.with_suffix('.tmp')
		try:
			self.path.parent.mkdir(parents=True, exist_ok=True)
			tmp.write_text(json.dumps(data), encoding='utf-8')
			os.replace(tmp, self.path)
		except OSError as e:
			raise StoreError(f'Cannot write {self.path}: {e}') from e


def create_store(kind: str, path: Path | None = None) -> PreferenceStore:
	if kind == 'file':
		return JsonFileStore(path)
	if kind == 'memory':
		return MemoryStore()
	raise StoreError(f'Unknown store backend: {kind}')

"""Password derivation (PBKDF2 chain + composition) and reference codes."""
from __future__ import annotations
import base64
from typing import Optional
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.backends import default_backend
from config.settings import (
	INNER_ITERATIONS, INNER_KEY_BITS, PASSWORD_ITERATIONS, PASSWORD_BITS,
	REFERENCE_CODE_SITE, REFERENCE_CODE_ITERATIONS, REFERENCE_CODE_BITS,
	NO_PASSWORD_PLACEHOLDER, IGNORE_MAX_LENGTH
)

def bits_to_password(data: bytes, bits: int) -> str:
	"""Base64 over the first `bits` bits of `data`, with `+`/`/` remapped to K/S.

	One character is emitted per started 6-bit group and the result is padded
	with `=` to a multiple of four, so 96 bits give 16 characters and 12 bits
	give two characters plus `==`.
	"""
	chars = -(-bits // 6)
	out = base64.b64encode(data).decode('ascii')[:chars]
	out += '=' * (-len(out) % 4)
	return out.replace('+', 'K').replace('/', 'S')

def _units(value: str) -> int:
	return len(value.encode('utf-16-le', 'surrogatepass')) // 2

def truncate(value: str, length: int) -> str:
	"""Keep the first `length` UTF-16 code units, as the browser clients count them."""
	raw = value.encode('utf-16-le', 'surrogatepass')[:2 * max(0, length)]
	return raw.decode('utf-16-le', 'surrogatepass')

class DerivationEngine:
	def __init__(self):
		self._backend = default_backend()

	def stretch(self, password: bytes, salt: bytes, iterations: int, bits: int) -> bytes:
		kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=-(-bits // 8), salt=salt, iterations=iterations, backend=self._backend)
		return kdf.derive(password)

	def chain(self, site: str, master: str, iterations: int, bits: int) -> bytes:
		"""Two-stage stretch: bind the site into a 256-bit key, then the slow round.

		The outer round takes the master string itself as password; the
		browser clients' PBKDF2 converts string passwords with their UTF-8
		codec, which is what `str.encode` reproduces here.
		"""
		inner = self.stretch(master.encode('utf-8'), site.encode('utf-8'), INNER_ITERATIONS, INNER_KEY_BITS)
		return self.stretch(master.encode('utf-8'), inner, iterations, bits)

	def derive(self, site: str, master: str) -> str:
		key = self.chain(site.lower(), master, PASSWORD_ITERATIONS, PASSWORD_BITS)
		return bits_to_password(key, PASSWORD_BITS)

	def generate(self, site: str, master: str, suffix: str = '', max_length: Optional[int] = IGNORE_MAX_LENGTH) -> str:
		suffix = suffix or ''
		base = self.derive(site, master)
		if max_length is None or max_length <= 0:
			return base + suffix
		core = truncate(base, max_length - _units(suffix))
		return truncate(core + suffix, max_length)

	def reference_code(self, master: str) -> str:
		if not master:
			return NO_PASSWORD_PLACEHOLDER
		key = self.chain(REFERENCE_CODE_SITE, master, REFERENCE_CODE_ITERATIONS, REFERENCE_CODE_BITS)
		return bits_to_password(key, REFERENCE_CODE_BITS).replace('=', '')

_engine = DerivationEngine()

def derive(site: str, master: str) -> str:
	return _engine.derive(site, master)

def generate(site: str, master: str, suffix: str = '', max_length: Optional[int] = IGNORE_MAX_LENGTH) -> str:
	return _engine.generate(site, master, suffix, max_length)

def reference_code(master: str) -> str:
	return _engine.reference_code(master)

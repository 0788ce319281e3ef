import asyncio
import pytest
from src.lib.crypto import generate, reference_code
from src.lib.session import Environment, EnvironmentNotInitialised, ReferenceCodeTrigger, Session
from src.lib.utils import ImportFormatError, JsonFileStore, MemoryStore, PasswordEntrySettings, StoreError
from config.settings import BUSY_TEXT, NO_PASSWORD_PLACEHOLDER, REFERENCE_CODE_DELAY

class FailingStore(MemoryStore):
    async def get_all(self):
        raise StoreError('store offline')

    async def get_for_input(self, site):
        raise StoreError('store offline')

    async def save(self, site, special_char, max_length):
        raise StoreError('save rejected')

def make_session(store=None, url=None, fail_url=False):
    errors = []
    async def initial_url():
        if fail_url:
            raise RuntimeError('tab query rejected')
        return url
    env = Environment(store=store or MemoryStore(), get_initial_url=initial_url, on_error=errors.append)
    return Session(env), errors

def test_session_requires_environment():
    with pytest.raises(EnvironmentNotInitialised):
        Session(None)

@pytest.mark.asyncio
async def test_start_prefills_site_and_suggestions():
    store = MemoryStore({'b.com': {'specialChar': '!'}, 'a.com': {'specialChar': ''}})
    s, errors = make_session(store, url='https://login.example.com/path')
    await s.start('secret')
    assert s.site == 'example.com'
    assert s.suggestions == ['a.com', 'b.com']
    assert s.reference_code == reference_code('secret')
    assert errors == []

@pytest.mark.asyncio
async def test_start_without_url_or_secret():
    s, errors = make_session()
    await s.start()
    assert s.site == ''
    assert s.reference_code == NO_PASSWORD_PLACEHOLDER
    assert errors == []

@pytest.mark.asyncio
async def test_start_reports_provider_failures():
    s, errors = make_session(FailingStore(), fail_url=True)
    await s.start('pw')
    assert [str(e) for e in errors] == ['tab query rejected', 'store offline']
    assert s.reference_code == reference_code('pw')

@pytest.mark.asyncio
async def test_generate_saves_settings_and_shows_busy():
    s, errors = make_session()
    shown = []
    pw = await s.generate_password('Site.com', 'm', '!', 6, busy=shown.append)
    assert pw == generate('site.com', 'm', '!', 6)
    assert shown == [BUSY_TEXT]
    assert await s.env.store.get_all() == {'site.com': PasswordEntrySettings('!', 6)}

@pytest.mark.asyncio
async def test_generate_survives_store_failure():
    s, errors = make_session(FailingStore())
    pw = await s.generate_password('a.com', 'm')
    assert pw == generate('a.com', 'm')
    assert len(errors) == 1 and isinstance(errors[0], StoreError)

@pytest.mark.asyncio
async def test_generate_empty_site_not_stored():
    s, _ = make_session()
    await s.generate_password('', 'm', '!', 3)
    assert await s.env.store.get_all() == {}

@pytest.mark.asyncio
async def test_settings_for():
    store = MemoryStore({
        'plain.com': {'specialChar': ''},
        'suffix.com': {'specialChar': '#', 'maxLength': 9},
        'limit.com': {'specialChar': '', 'maxLength': 4},
    })
    s, _ = make_session(store)
    assert await s.settings_for('unknown.com') is None
    assert await s.settings_for('plain.com') is None
    assert await s.settings_for('suffix.com') == PasswordEntrySettings('#', 9)
    assert await s.settings_for('limit.com') == PasswordEntrySettings('!', 4)

@pytest.mark.asyncio
async def test_import_legacy_then_export():
    s, errors = make_session()
    count = await s.import_settings('google.com\\!\\5\\wikipedia.com\\\\-1\\')
    assert count == 2
    assert s.suggestions == ['google.com', 'wikipedia.com']
    assert await s.export_settings() == '{"google.com": {"specialChar": "!", "maxLength": 5}, "wikipedia.com": {"specialChar": ""}}'
    assert errors == []

@pytest.mark.asyncio
async def test_import_invalid_reports_once():
    s, errors = make_session()
    assert await s.import_settings('garbage') == 0
    assert len(errors) == 1 and isinstance(errors[0], ImportFormatError)
    assert await s.env.store.get_all() == {}

@pytest.mark.asyncio
async def test_import_empty_text_is_noop():
    s, errors = make_session()
    assert await s.import_settings('') == 0
    assert errors == []

@pytest.mark.asyncio
async def test_import_reports_each_failed_save():
    s, errors = make_session(FailingStore())
    assert await s.import_settings('{"a.com": {}, "b.com": {}}') == 0
    assert [str(e) for e in errors] == ['save rejected', 'save rejected', 'store offline']

@pytest.mark.asyncio
async def test_export_reports_failure():
    s, errors = make_session(FailingStore())
    assert await s.export_settings() is None
    assert len(errors) == 1

def test_default_error_reporter_logs(caplog):
    env = Environment(store=MemoryStore())
    env.report(StoreError('boom'))
    assert 'boom' in caplog.text

def test_default_debounce_delay():
    assert REFERENCE_CODE_DELAY == 0.5

@pytest.mark.asyncio
async def test_reference_code_debounced():
    shown = []
    trigger = ReferenceCodeTrigger(shown.append, delay=0.05)
    for text in ('s', 'se', 'sec'):
        trigger.on_master_secret_changed(text)
        await asyncio.sleep(0.01)
    assert shown == []
    assert trigger.pending
    await asyncio.sleep(0.1)
    assert shown == [reference_code('sec')]
    assert not trigger.pending

@pytest.mark.asyncio
async def test_reference_code_bootstrap_and_cancel():
    shown = []
    trigger = ReferenceCodeTrigger(shown.append, delay=0.05)
    trigger.on_master_secret_changed('late')
    trigger.bootstrap('')
    assert shown == [NO_PASSWORD_PLACEHOLDER]
    await asyncio.sleep(0.1)
    assert shown == [NO_PASSWORD_PLACEHOLDER]

@pytest.mark.asyncio
async def test_corrupt_settings_file_reported_and_preserved(tmp_path):
    path = tmp_path / 'settings.json'
    damaged = '{"a.com": {"specialChar": "!"}, "b.com": {"specialCh'
    path.write_text(damaged)
    s, errors = make_session(JsonFileStore(path))
    pw = await s.generate_password('c.com', 'pw', '', -1)
    assert pw == generate('c.com', 'pw')
    assert len(errors) == 1 and isinstance(errors[0], StoreError)
    assert path.read_text() == damaged

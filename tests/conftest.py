"""Shared test fixtures.

Every store built here uses in-memory storage and collects exports in a
list, so nothing touches the working directory.
"""

import pytest
import pytest_asyncio

from zakat_tracker.config import PACKAGED_TEMPLATE_PATH, Settings
from zakat_tracker.models.user_data import UserDataRecord
from zakat_tracker.services.storage import InMemoryStorage
from zakat_tracker.services.template import DefaultTemplateLoader
from zakat_tracker.store import UserDataStore


@pytest.fixture
def storage():
    """Return an empty in-memory storage."""
    return InMemoryStorage()


@pytest.fixture
def template_loader():
    """Loader for the packaged default template."""
    return DefaultTemplateLoader(source=str(PACKAGED_TEMPLATE_PATH))


@pytest.fixture
def missing_template_loader(tmp_path):
    """Loader pointing at a template file that does not exist."""
    return DefaultTemplateLoader(source=str(tmp_path / "missing-template.json"))


@pytest.fixture
def exports():
    """Collects (filename, text) pairs handed to the export sink."""
    return []


@pytest.fixture
def make_store(storage, template_loader, exports):
    """Factory for stores sharing the fixture storage and export list."""
    def _make(**overrides):
        kwargs = {
            "storage": storage,
            "template_loader": template_loader,
            "export_sink": lambda filename, text: exports.append((filename, text)),
            "settings": Settings(),
        }
        kwargs.update(overrides)
        return UserDataStore(**kwargs)
    return _make


@pytest.fixture
def store(make_store):
    """A store that has not loaded anything yet."""
    return make_store()


@pytest_asyncio.fixture
async def loaded_store(store):
    """A store with the default template loaded and persisted."""
    await store.load()
    yield store
    store.stop_auto_backup()


@pytest.fixture
def strip_timestamps():
    """Record as a dict without the save timestamp, for equality checks."""
    def _strip(record: UserDataRecord) -> dict:
        data = record.to_dict()
        data["appInfo"].pop("lastUpdated")
        return data
    return _strip

import os
import sys

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from posdesk.config import get_settings
from posdesk.services.store import reset_document_store


@pytest.fixture(autouse=True)
def _reset_store() -> None:
    reset_document_store()
    get_settings.cache_clear()
    yield
    reset_document_store()
    get_settings.cache_clear()

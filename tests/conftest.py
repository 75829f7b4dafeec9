import os
import sys

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from edubook_pricing.data.mock_data import NOTEBOOKS_MOCK, TEXTBOOKS_MOCK
from edubook_pricing.engine.models import UploadMeta
from edubook_pricing.engine.reconciler import reconcile
from edubook_pricing.services.store import InMemoryStore


@pytest.fixture
def meta():
    """Defaults from the setup form."""
    return UploadMeta(
        class_name="12",
        course="Science",
        textbook_discount=10,
        textbook_tax=5,
        notebook_discount=15,
        notebook_tax=5,
    )


@pytest.fixture
def mock_lists(meta):
    """Mock textbooks and notebooks reconciled without a ledger."""
    return reconcile(TEXTBOOKS_MOCK, NOTEBOOKS_MOCK, meta)


@pytest.fixture
def store():
    return InMemoryStore()

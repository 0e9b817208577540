import pytest

from saved_search_trigger.config import TriggerConfig
from tests.support import TOKEN


@pytest.fixture
def config() -> TriggerConfig:
    return TriggerConfig(token=TOKEN, owner="admin", app="search", enable_logging=False)

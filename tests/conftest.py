import pytest

from pattern_engine.core.instrumentation import Instrumentation
from pattern_engine.utils.language_processors import PythonProcessor


@pytest.fixture
def processor():
    return PythonProcessor()


@pytest.fixture
def instrumentation():
    return Instrumentation.enabled()

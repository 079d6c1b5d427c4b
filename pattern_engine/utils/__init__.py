# pattern_engine/utils/__init__.py

# Initialize the utils subpackage
from .logging_config import logger, setup_logging
from .language_processors import (
    LanguageProcessor,
    LanguageProcessorRegistry,
    PythonProcessor,
)

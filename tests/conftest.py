# PIP3 modules
import pytest

# Local modules
import survey_summarizer


@pytest.fixture(autouse=True)
def reset_logger():
    """Drop handlers installed by main() so later tests don't log to closed streams."""
    yield
    survey_summarizer.logger.handlers.clear()

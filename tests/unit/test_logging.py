"""
Unit tests for log formatting
"""

import logging
from core.exceptions import PageFetchError
from core.logging import HarvestFormatter, LOG_FORMAT


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("ingestion.coordinator", logging.ERROR, __file__, 1, "Listing failed", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestHarvestFormatter:
    """Test error context rendering"""

    def test_plain_record_unchanged(self):
        formatter = HarvestFormatter(LOG_FORMAT)

        assert formatter.format(make_record()).endswith("| ingestion.coordinator | Listing failed")

    def test_error_context_appended(self):
        error = PageFetchError(
            "Listing page failed",
            context={"content_type": "tv", "query": "<discover>", "page": 3, "extra": "ignored"}
        )
        formatter = HarvestFormatter(LOG_FORMAT)

        line = formatter.format(make_record(error_context=error.to_dict()))

        assert line.endswith("Listing failed [PageFetchError content_type=tv query=<discover> page=3]")

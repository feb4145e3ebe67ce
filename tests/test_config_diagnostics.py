"""Tests for tolerances, diagnostics and logging setup."""
import logging

import pytest

from georecon.config import GAP_REPAIR_TOLERANCE, ToleranceContext
from georecon.diagnostics import Diagnostics, Severity
from georecon.exceptions import ConfigurationError, UnrepairableGapError
from georecon.logging_config import setup_logging


def test_default_tolerances():
    tol = ToleranceContext()
    assert tol.vertex_epsilon == pytest.approx(1.5e-4)
    assert tol.short_curve_tolerance == pytest.approx(2.4e-3)
    assert tol.gap_epsilon == pytest.approx(GAP_REPAIR_TOLERANCE)


def test_gap_epsilon_follows_a_large_vertex_tolerance():
    tol = ToleranceContext(vertex_epsilon=0.01)
    assert tol.gap_epsilon == pytest.approx(0.01)


@pytest.mark.parametrize("field", ["vertex_epsilon", "short_curve_tolerance", "length_unit_scale"])
def test_non_positive_tolerance_is_rejected(field):
    with pytest.raises(ConfigurationError) as excinfo:
        ToleranceContext(**{field: 0.0})
    assert field in excinfo.value.details


def test_format_length_in_display_unit():
    assert ToleranceContext().format_length(0.001) == "0.001 m"
    assert ToleranceContext.from_unit("mm").format_length(0.001) == "1 mm"


def test_unknown_unit_is_rejected():
    with pytest.raises(ConfigurationError, match="Unknown length unit"):
        ToleranceContext.from_unit("furlong")


def test_is_too_short():
    tol = ToleranceContext()
    assert tol.is_too_short(0.002)
    assert tol.is_too_short(2.4e-3)
    assert not tol.is_too_short(0.003)


def test_unrepairable_gap_error_details():
    error = UnrepairableGapError("gap", 0.5, 0.003, (1, 2))
    assert error.segment_indices == (1, 2)
    assert error.details["segments"] == "1, 2"


def test_diagnostics_are_recorded_and_logged(caplog):
    diagnostics = Diagnostics()
    with caplog.at_level(logging.WARNING, logger="georecon"):
        diagnostics.log_warning(7, "first")
        diagnostics.log_error(7, "second", is_fatal=True)

    assert [d.severity for d in diagnostics.records] == [Severity.WARNING, Severity.ERROR]
    assert diagnostics.errors[0].is_fatal
    assert diagnostics.messages() == ["first", "second"]
    assert "#7: first" in caplog.text

    diagnostics.clear()
    assert diagnostics.records == []


def test_setup_logging(tmp_path):
    log_file = tmp_path / "georecon.log"
    logger = logging.getLogger("georecon")
    try:
        setup_logging(logging.DEBUG, str(log_file))
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2

        # Re-configuration replaces the handlers
        assert setup_logging("info") is logger
        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1
    finally:
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
    assert "Logging initialized at level DEBUG." in log_file.read_text(encoding="utf-8")


def test_setup_logging_rejects_unknown_level():
    with pytest.raises(ValueError, match="Unknown logging level"):
        setup_logging("loud")

"""Tests for alert construction."""

import pytest

from label_checker.domain.models.alert import ALERT_CATEGORY, AlertSeverity, build_alert
from label_checker.domain.models.verification import VerificationOutcome, VerificationRecord


def record(result: VerificationOutcome, violations, record_id="rec-1", percent=42) -> VerificationRecord:
    """Build a stored record."""
    return VerificationRecord(
        id=record_id,
        image_ref="https://shop.example.com/olio.png",
        extracted_text="OLIO",
        result=result,
        match_percent=percent,
        violations=violations,
    )


def test_no_alert_for_conforme():
    """Test conforming labels raise no alert."""
    assert build_alert(record(VerificationOutcome.CONFORME, [], percent=90)) is None


def test_critical_alert():
    """Test non_conforme records raise a critical alert."""
    alert = build_alert(record(VerificationOutcome.NON_CONFORME, ["Logo diverso"]))

    assert alert.category == ALERT_CATEGORY
    assert alert.severity == AlertSeverity.CRITICO
    assert alert.title == "Etichetta non conforme rilevata"
    assert alert.description == "Score combinato: 42%. Violazioni: Logo diverso"
    assert alert.verification_id == "rec-1"


def test_medium_alert_lists_first_violations():
    """Test only the first three violations are listed."""
    alert = build_alert(
        record(VerificationOutcome.SOSPETTA, ["uno", "due", "tre", "quattro"], percent=65)
    )

    assert alert.severity == AlertSeverity.MEDIO
    assert alert.title == "Etichetta sospetta rilevata"
    assert alert.description == "Score combinato: 65%. Violazioni: uno, due, tre..."


def test_exactly_three_violations_not_truncated():
    """Test three violations are listed without an ellipsis."""
    alert = build_alert(record(VerificationOutcome.SOSPETTA, ["uno", "due", "tre"]))
    assert alert.description.endswith("uno, due, tre")


def test_alert_requires_stored_record():
    """Test an alert cannot reference an unsaved record."""
    with pytest.raises(ValueError):
        build_alert(record(VerificationOutcome.NON_CONFORME, [], record_id=None))

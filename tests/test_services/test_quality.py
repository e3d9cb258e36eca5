# tests/test_services/test_quality.py

import pytest

from app.core.exceptions import ValidationError
from app.schemas.enums import Quality
from app.services.quality import negotiate


def test_no_request_serves_plan_cap():
    out = negotiate(None, Quality.P1080)
    assert out.serving is Quality.P1080
    assert out.allowed == [Quality.P480, Quality.P720, Quality.P1080]


def test_request_above_cap_is_clamped_not_rejected():
    out = negotiate("4K", Quality.P720)
    assert out.serving is Quality.P720
    assert Quality.UHD_4K not in out.allowed


def test_request_below_cap_is_honoured_case_insensitively():
    assert negotiate("480P", Quality.UHD_4K).serving is Quality.P480
    assert negotiate("4k", Quality.UHD_4K).serving is Quality.UHD_4K


def test_unknown_label_is_validation_error():
    with pytest.raises(ValidationError) as ei:
        negotiate("8K", Quality.UHD_4K)
    assert ei.value.status_code == 400
    assert ei.value.kind == "validation"
    assert "480p" in ei.value.details["allowed"]


def test_allowed_list_is_ascending_and_capped():
    for cap in Quality:
        allowed = negotiate(None, cap).allowed
        assert allowed[-1] is cap
        assert [q.rank for q in allowed] == sorted(q.rank for q in allowed)

from downtime_stats.core.exceptions import (
    AuthenticationError,
    DowntimeStatsError,
    EntityFetchError,
    InvalidWindowError,
    ObservationIntegrityError,
    StoreUnavailableError,
)


def test_error_to_dict():
    err = DowntimeStatsError(code="test_error", message="Something broke", status=500)
    d = err.to_dict()
    assert d["error"]["code"] == "test_error"
    assert d["error"]["message"] == "Something broke"
    assert d["error"]["status"] == 500
    assert "details" not in d["error"]


def test_error_with_details():
    err = DowntimeStatsError(code="x", message="y", status=400, details={"hint": "try again"})
    assert err.to_dict()["error"]["details"]["hint"] == "try again"


def test_authentication_error_defaults():
    err = AuthenticationError()
    assert err.status == 401
    assert err.code == "authentication_required"


def test_invalid_window_error_defaults():
    err = InvalidWindowError()
    assert err.status == 400
    assert err.code == "invalid_window"


def test_observation_integrity_error_defaults():
    err = ObservationIntegrityError()
    assert err.status == 422
    assert err.code == "malformed_observation"


def test_entity_fetch_error_names_monitor():
    err = EntityFetchError(42, "timeout", details={"cause": "store"})
    assert err.status == 502
    assert err.monitor_id == 42
    assert "42" in err.message
    assert err.to_dict()["error"]["details"] == {"monitor_id": 42, "cause": "store"}


def test_store_unavailable_error_defaults():
    err = StoreUnavailableError()
    assert err.status == 502
    assert err.code == "store_unavailable"

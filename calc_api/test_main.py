# test_main.py
import logging

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from calc_api.main import (
    app,
    cors_origins,
    log_level,
    EvaluateRequest,
    KeypadRequest,
    SanitizeRequest,
    StateModel,
)
from calc_engine.main import CalculatorState, DIV_ZERO_TEXT


@pytest.fixture
def client():
    return TestClient(app)


def press_all(client, keys, state=None):
    """Feed keys one request at a time, sending back the returned state like the widget does."""
    body = None
    state = state or {}
    for key in keys:
        response = client.post("/keypad", json={"state": state, "key": key})
        assert response.status_code == 200
        body = response.json()
        state = body["state"]
    return body


# ----- Model Tests -----

def test_sanitize_request_requires_single_character():
    assert SanitizeRequest(current="1", next="+").next == "+"
    with pytest.raises(ValidationError):
        SanitizeRequest(current="1", next="12")
    with pytest.raises(ValidationError):
        SanitizeRequest(current="1", next="")


def test_evaluate_request_rejects_blank_expression():
    with pytest.raises(ValidationError):
        EvaluateRequest(expression="   ")


def test_state_model_round_trip():
    state = CalculatorState(display="1+", last_result="3", error="Error")
    assert StateModel.from_state(state).to_state() == state


def test_keypad_request_defaults_to_empty_state():
    request = KeypadRequest(key="5")
    assert request.state.to_state() == CalculatorState()


def test_cors_origins(monkeypatch):
    monkeypatch.delenv("CALC_CORS_ORIGINS", raising=False)
    assert cors_origins() == ["*"]
    monkeypatch.setenv("CALC_CORS_ORIGINS", "http://localhost:3000, https://calc.example.com")
    assert cors_origins() == ["http://localhost:3000", "https://calc.example.com"]
    monkeypatch.setenv("CALC_CORS_ORIGINS", " , ")
    assert cors_origins() == ["*"]


def test_log_level(monkeypatch):
    monkeypatch.delenv("CALC_LOG_LEVEL", raising=False)
    assert log_level() == logging.INFO
    monkeypatch.setenv("CALC_LOG_LEVEL", "debug")
    assert log_level() == logging.DEBUG
    monkeypatch.setenv("CALC_LOG_LEVEL", "LOUD")
    assert log_level() == logging.INFO
    monkeypatch.setenv("CALC_LOG_LEVEL", "BASIC_FORMAT")
    assert log_level() == logging.INFO


# ----- Route Tests -----

def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.parametrize("current,next_key,expected", [
    ("", "-", "-"),
    ("", "+", ""),
    ("12.3", ".", "12.3"),
    ("1+", "+", "1+"),
    ("1+", "2", "1+2"),
    ("", ".", "0."),
])
def test_sanitize_endpoint(client, current, next_key, expected):
    response = client.post("/sanitize", json={"current": current, "next": next_key})
    assert response.status_code == 200
    assert response.json() == {"display": expected}


def test_sanitize_endpoint_rejects_multi_character_key(client):
    response = client.post("/sanitize", json={"current": "1", "next": "+-"})
    assert response.status_code == 422


def test_evaluate_endpoint_number(client):
    response = client.post("/evaluate", json={"expression": "2+3*4"})
    assert response.status_code == 200
    data = response.json()
    assert data["kind"] == "NUMBER"
    assert data["value"] == 20
    assert data["formatted"] == "20"
    assert data["message"] == ""


def test_evaluate_endpoint_trims_float_noise(client):
    data = client.post("/evaluate", json={"expression": "0.1+0.2"}).json()
    assert data["formatted"] == "0.3"


def test_evaluate_endpoint_division_by_zero(client):
    response = client.post("/evaluate", json={"expression": "5/0"})
    assert response.status_code == 200
    data = response.json()
    assert data["kind"] == "DIV_ZERO"
    assert data["value"] is None
    assert data["formatted"] == "Error"


def test_evaluate_endpoint_invalid_expression(client):
    data = client.post("/evaluate", json={"expression": "5/"}).json()
    assert data["kind"] == "INVALID_EXPRESSION"
    assert data["formatted"] == "Error"
    assert "position 1" in data["message"]


@pytest.mark.parametrize("expression", [
    "9" * 400,
    "9" * 400 + "-" + "9" * 400,
    "9" * 200 + "*" + "9" * 200,
])
def test_evaluate_endpoint_out_of_range(client, expression):
    response = client.post("/evaluate", json={"expression": expression})
    assert response.status_code == 200
    data = response.json()
    assert data["kind"] == "OUT_OF_RANGE"
    assert data["value"] is None
    assert data["formatted"] == "Error"
    assert "out of range" in data["message"]


def test_evaluate_endpoint_rejects_non_ascii_digits(client):
    data = client.post("/evaluate", json={"expression": "١٢+1"}).json()
    assert data["kind"] == "INVALID_EXPRESSION"
    assert data["formatted"] == "Error"


def test_evaluate_endpoint_blank_expression(client):
    response = client.post("/evaluate", json={"expression": ""})
    assert response.status_code == 422


def test_evaluate_endpoint_logs_failures(client, caplog):
    with caplog.at_level(logging.INFO, logger="calc_api.main"):
        client.post("/evaluate", json={"expression": "5/0"})
    assert "failed with DIV_ZERO" in caplog.text


@pytest.mark.parametrize("value,expected", [
    (4.0, "4"),
    (0.30000000000000004, "0.3"),
    (-2.5, "-2.5"),
    (1e15, "Error"),
])
def test_format_endpoint(client, value, expected):
    response = client.post("/format", json={"value": value})
    assert response.status_code == 200
    assert response.json() == {"formatted": expected}


def test_keypad_endpoint_single_key(client):
    response = client.post("/keypad", json={"key": "7"})
    assert response.status_code == 200
    assert response.json() == {
        "state": {"display": "7", "last_result": None, "error": ""},
        "screen": "7",
        "status": "Ready",
    }


def test_keypad_endpoint_full_calculation(client):
    body = press_all(client, ["2", "+", "3", "*", "4", "Enter"])
    assert body["state"] == {"display": "20", "last_result": "20", "error": ""}
    assert body["screen"] == "20"
    assert body["status"] == "Last: 20"


def test_keypad_endpoint_division_by_zero(client):
    body = press_all(client, ["5", "/", "0", "="])
    assert body["state"]["display"] == "5/0"
    assert body["state"]["error"] == DIV_ZERO_TEXT
    assert body["status"] == "Ready"


def test_keypad_endpoint_delete_and_clear(client):
    body = press_all(client, ["1", "2", "Backspace"])
    assert body["screen"] == "1"
    body = press_all(client, ["Escape"], state=body["state"])
    assert body["state"] == {"display": "", "last_result": None, "error": ""}


def test_keypad_endpoint_ignores_unknown_key(client):
    state = {"display": "12", "last_result": None, "error": ""}
    body = press_all(client, ["Shift"], state=state)
    assert body["state"] == state


def test_keypad_endpoint_requires_key(client):
    response = client.post("/keypad", json={"state": {}})
    assert response.status_code == 422


def test_lifespan_logs(caplog):
    with caplog.at_level(logging.INFO, logger="calc_api.main"):
        with TestClient(app) as client:
            client.get("/health")
    assert "starting up" in caplog.text
    assert "shutting down" in caplog.text

import pytest

from main import format_validation_error


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert "timestamp" in body


def test_security_headers_are_set(client):
    response = client.get("/health")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert "Content-Security-Policy" in response.headers
    assert "Referrer-Policy" in response.headers
    # ENVIRONMENT=test is not development
    assert "Strict-Transport-Security" in response.headers


def test_unknown_route_uses_message_body(client):
    response = client.get("/api/nothing-here")

    assert response.status_code == 404
    assert "message" in response.json()


def test_malformed_json_is_a_400(client, user):
    response = client.post(
        "/api/projects",
        content=b"{not json",
        headers={**user["headers"], "Content-Type": "application/json"},
    )

    assert response.status_code == 400


@pytest.mark.parametrize(
    "errors, expected",
    [
        ([{"type": "missing", "loc": ("body", "title"), "msg": "Field required"}], "title is required"),
        ([{"type": "missing", "loc": ("body",), "msg": "Field required"}], "Request body is required"),
        (
            [{"type": "extra_forbidden", "loc": ("body", "projectId"), "msg": "Extra inputs are not permitted"}],
            "projectId is not allowed",
        ),
        (
            [{"type": "value_error", "loc": ("body",), "msg": "Value error, At least one field must be provided for update"}],
            "At least one field must be provided for update",
        ),
        (
            [{"type": "int_parsing", "loc": ("query", "page"), "msg": "Input should be a valid integer"}],
            "page: Input should be a valid integer",
        ),
        ([], "Invalid request"),
    ],
)
def test_format_validation_error(errors, expected):
    assert format_validation_error(errors) == expected


def test_only_first_error_is_reported():
    errors = [
        {"type": "missing", "loc": ("body", "name"), "msg": "Field required"},
        {"type": "missing", "loc": ("body", "email"), "msg": "Field required"},
    ]

    assert format_validation_error(errors) == "name is required"

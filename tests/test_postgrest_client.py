import pytest
from fastapi import HTTPException
from postgrest import APIError as PostgrestAPIError

from app.services import postgrest_client
from app.services.errors import UpstreamError


def test_bearer_token_is_extracted() -> None:
    assert postgrest_client.extract_bearer_token("Bearer abc.def") == "abc.def"
    assert postgrest_client.extract_bearer_token("bearer xyz") == "xyz"


@pytest.mark.parametrize("header", [None, "", "Token abc", "Bearer", "Bearer a b"])
def test_bad_authorization_header_is_unauthorized(header) -> None:
    with pytest.raises(HTTPException) as excinfo:
        postgrest_client.extract_bearer_token(header)
    assert excinfo.value.status_code == 401


def test_client_is_read_only_and_authenticated(monkeypatch) -> None:
    monkeypatch.setattr(postgrest_client, "SUPABASE_URL", "https://project.supabase.co/")
    monkeypatch.setattr(postgrest_client, "SUPABASE_ANON_KEY", "anon-key")

    client = postgrest_client.create_postgrest_client("user-token")

    headers = client.session.headers
    assert headers["apikey"] == "anon-key"
    assert headers["Authorization"] == "Bearer user-token"
    assert "Prefer" not in headers
    with pytest.raises(TypeError):
        postgrest_client.create_postgrest_client("user-token", prefer="return=representation")


def test_unconfigured_store_is_an_upstream_error(monkeypatch) -> None:
    monkeypatch.setattr(postgrest_client, "SUPABASE_URL", None)

    with pytest.raises(UpstreamError):
        postgrest_client.create_postgrest_client("user-token", api_key="key")


def test_service_role_key_replaces_user_token(monkeypatch) -> None:
    monkeypatch.setattr(postgrest_client, "SUPABASE_SERVICE_ROLE_KEY", "service-key")
    assert postgrest_client.resolve_postgrest_credentials("user-token") == ("service-key", "service-key")

    monkeypatch.setattr(postgrest_client, "SUPABASE_SERVICE_ROLE_KEY", None)
    assert postgrest_client.resolve_postgrest_credentials("user-token") == ("user-token", None)


def test_postgrest_error_is_wrapped_without_details() -> None:
    exc = PostgrestAPIError({"message": "secret row data", "code": "PGRST301", "hint": None, "details": None})

    error = postgrest_client.upstream_error_from_postgrest(exc, context="inventory snapshot")

    assert isinstance(error, UpstreamError)
    assert str(error) == "inventory snapshot failed (502)"

"""Tests for discovery metadata documents."""

from webex_mcp.auth.discovery import DiscoveryPublisher

from ..conftest import SERVER_URL


class TestDiscoveryPublisher:
    def test_trailing_slash_is_stripped(self):
        assert DiscoveryPublisher("https://a.test/").server_url == "https://a.test"

    def test_www_authenticate_points_at_resource_metadata(self, discovery):
        assert discovery.www_authenticate() == (
            f'Bearer resource_metadata="{SERVER_URL}/.well-known/oauth-protected-resource"'
        )

    def test_protected_resource_metadata(self, discovery):
        metadata = discovery.protected_resource_metadata()
        assert metadata["resource"] == SERVER_URL
        assert metadata["authorization_servers"] == [SERVER_URL]
        assert metadata["scopes_supported"] == ["spark:all"]

    def test_authorization_server_metadata(self, discovery):
        metadata = discovery.authorization_server_metadata()
        assert metadata["issuer"] == SERVER_URL
        assert metadata["authorization_endpoint"] == f"{SERVER_URL}/authorize"
        assert metadata["token_endpoint"] == f"{SERVER_URL}/token"
        assert metadata["registration_endpoint"] == f"{SERVER_URL}/register"
        assert metadata["revocation_endpoint"] == f"{SERVER_URL}/revoke"
        assert metadata["code_challenge_methods_supported"] == ["S256", "plain"]
        assert metadata["grant_types_supported"] == ["authorization_code", "refresh_token"]
        assert metadata["response_types_supported"] == ["code"]
        assert "none" in metadata["token_endpoint_auth_methods_supported"]


class TestDiscoveryRoutes:
    def test_served_without_auth_and_cached(self, client):
        for path in (
            "/.well-known/oauth-protected-resource",
            "/.well-known/oauth-authorization-server",
        ):
            response = client.get(path)
            assert response.status_code == 200
            assert response.headers["cache-control"] == "public, max-age=3600"
            assert response.json()

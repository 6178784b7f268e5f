"""
Unit tests for the command line client.

Commands are run against the fake backend through `run`.
"""

import pytest

from strapi_sdk.cli import build_parser, run


class TestParser:
    """Tests for argument parsing."""

    @pytest.mark.unit
    def test_create_parses_json(self):
        """Test entry data is decoded from JSON."""
        args = build_parser().parse_args(["create", "articles", '{"title": "t"}'])
        assert args.data == {"title": "t"}

    @pytest.mark.unit
    def test_invalid_json_rejected(self):
        """Test bad JSON exits with a usage error."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["create", "articles", "{nope"])

    @pytest.mark.unit
    def test_command_required(self):
        """Test a command must be given."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestCommands:
    """Tests for command dispatch."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_login(self, stored_client, backend, auth_response, test_config):
        """Test login stores the token and prints the user."""
        backend.add("POST", "/auth/local", json=auth_response)
        args = build_parser().parse_args(["login", "ana", "--password", "secret"])

        result = await run(args, stored_client)

        assert result == test_config["user"]
        assert backend.body(backend.last) == {"identifier": "ana", "password": "secret"}
        assert stored_client.get_token() == test_config["jwt"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_find_with_query(self, client, backend):
        """Test --query filters are forwarded as nested params."""
        backend.add("GET", "/articles", json=[])
        args = build_parser().parse_args(["find", "articles", "-q", "_where[title_contains]=news&_limit=5"])

        await run(args, client)

        params = backend.last.url.params
        assert params["_where[title_contains]"] == "news"
        assert params["_limit"] == "5"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_logout(self, stored_client):
        """Test logout clears the stored token."""
        stored_client.set_token("abc")
        args = build_parser().parse_args(["logout"])

        assert await run(args, stored_client) == {"ok": True}
        assert stored_client.get_token() is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connect_url(self, client, test_config):
        args = build_parser().parse_args(["connect-url", "github"])

        assert await run(args, client) == f"{test_config['url']}/connect/github"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_provider_callback(self, client, backend, auth_response, test_config):
        """Test the redirect query string finishes the provider login."""
        backend.add("GET", "/auth/github/callback", json=auth_response)
        args = build_parser().parse_args(["provider-callback", "github", "?access_token=abc"])

        assert await run(args, client) == {"jwt": test_config["jwt"]}
        assert backend.last.url.params["access_token"] == "abc"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_upload(self, client, backend, tmp_path):
        """Test files on disk are uploaded with their attachment fields."""
        path = tmp_path / "cover.png"
        path.write_bytes(b"\x89PNG")
        backend.add("POST", "/upload", json=[{"id": 1}])
        args = build_parser().parse_args(["upload", str(path), "--ref", "article", "--ref-id", "1"])

        assert await run(args, client) == [{"id": 1}]
        assert b'filename="cover.png"' in backend.last.content
        assert b'name="ref"' in backend.last.content
        assert b'name="field"' not in backend.last.content

"""
Unit tests for the GitHub client.

These tests verify that:
1. GitHubClient initializes from explicit configuration
2. Transport and GraphQL errors are normalized into domain errors
3. Overview pagination follows cursors and stops at the repository cap
4. Contribution queries are bounded to the UTC year window
"""

import asyncio
import pytest
import aiohttp
from unittest.mock import AsyncMock, patch
from wrapped.client import GitHubClient
from wrapped.config import Settings
from wrapped.domain import (
    NotFoundError,
    UpstreamUnavailableError,
    RateLimitError,
    AuthenticationError,
    IncompleteDataError,
)


def mock_post_response(status=200, json_data=None, text="", json_error=None):
    """Build a mock for ``session.post(...)`` used as an async context manager."""
    response = AsyncMock()
    response.status = status
    response.text = AsyncMock(return_value=text)
    if json_error is not None:
        response.json = AsyncMock(side_effect=json_error)
    else:
        response.json = AsyncMock(return_value=json_data)

    context = AsyncMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=None)
    return context


class TestGitHubClientInitialization:
    """Test GitHubClient initialization and setup."""

    def test_client_initialization_with_token(self):
        client = GitHubClient(token="valid_token_123")

        assert client.headers["Authorization"] == "Bearer valid_token_123"
        assert client.graphql_url == "https://api.github.com/graphql"
        assert client.page_size == 100
        assert client.max_repos == 1000

    def test_client_initialization_invalid_token(self):
        with pytest.raises(ValueError, match="GitHub token is required"):
            GitHubClient(token="")

    def test_client_from_settings(self):
        config = Settings(
            github_token="abc",
            github_api_url="http://fake.local/graphql",
            page_size=50,
            max_repos=200,
        )
        client = GitHubClient.from_settings(config)

        assert client.graphql_url == "http://fake.local/graphql"
        assert client.page_size == 50
        assert client.max_repos == 200

    def test_page_size_never_exceeds_cap(self):
        client = GitHubClient(token="t", page_size=100, max_repos=30)
        assert client.page_size == 30


class TestGitHubClientContextManager:
    """Test GitHubClient async context manager."""

    @pytest.mark.asyncio
    async def test_context_manager_session_creation(self):
        client = GitHubClient(token="valid_token_123")

        async with client as c:
            assert isinstance(c._session, aiohttp.ClientSession)
        assert client._session is None

    @pytest.mark.asyncio
    async def test_request_outside_context_manager(self):
        client = GitHubClient(token="valid_token_123")
        with pytest.raises(RuntimeError):
            await client._make_graphql_request({"query": "test"})


class TestGitHubClientRequestHandling:
    """Test GraphQL request handling and error normalization."""

    @pytest.mark.asyncio
    async def test_graphql_request_success(self):
        client = GitHubClient(token="valid_token_123")

        async with client:
            with patch.object(client._session, "post") as mock_post:
                mock_post.return_value = mock_post_response(
                    json_data={"data": {"user": {"login": "octocat"}}}
                )
                result = await client._make_graphql_request({"query": "test"})

        assert result == {"user": {"login": "octocat"}}

    @pytest.mark.asyncio
    async def test_graphql_request_authentication_error(self):
        client = GitHubClient(token="valid_token_123")

        async with client:
            with patch.object(client._session, "post") as mock_post:
                mock_post.return_value = mock_post_response(status=401)
                with pytest.raises(AuthenticationError):
                    await client._make_graphql_request({"query": "test"})

    @pytest.mark.asyncio
    async def test_graphql_request_rate_limit_is_not_retried(self):
        client = GitHubClient(token="valid_token_123")

        async with client:
            with patch.object(client._session, "post") as mock_post:
                mock_post.return_value = mock_post_response(
                    status=403, text="API rate limit exceeded"
                )
                with pytest.raises(RateLimitError):
                    await client._make_graphql_request({"query": "test"})

                assert mock_post.call_count == 1

    @pytest.mark.asyncio
    async def test_graphql_request_server_error(self):
        client = GitHubClient(token="valid_token_123")

        async with client:
            with patch.object(client._session, "post") as mock_post:
                mock_post.return_value = mock_post_response(status=502)
                with pytest.raises(UpstreamUnavailableError, match="HTTP 502"):
                    await client._make_graphql_request({"query": "test"})

    @pytest.mark.asyncio
    async def test_graphql_request_network_error(self):
        client = GitHubClient(token="valid_token_123")

        async with client:
            with patch.object(client._session, "post") as mock_post:
                mock_post.side_effect = aiohttp.ClientConnectionError("connection reset")
                with pytest.raises(UpstreamUnavailableError, match="connection reset"):
                    await client._make_graphql_request({"query": "test"})

    @pytest.mark.asyncio
    async def test_graphql_request_timeout(self):
        client = GitHubClient(token="valid_token_123")

        async with client:
            with patch.object(client._session, "post") as mock_post:
                mock_post.side_effect = asyncio.TimeoutError()
                with pytest.raises(UpstreamUnavailableError):
                    await client._make_graphql_request({"query": "test"})

    @pytest.mark.asyncio
    async def test_graphql_request_malformed_json(self):
        client = GitHubClient(token="valid_token_123")

        async with client:
            with patch.object(client._session, "post") as mock_post:
                mock_post.return_value = mock_post_response(
                    json_error=ValueError("Expecting value")
                )
                with pytest.raises(UpstreamUnavailableError, match="malformed"):
                    await client._make_graphql_request({"query": "test"})

    @pytest.mark.asyncio
    async def test_graphql_not_found_error(self):
        client = GitHubClient(token="valid_token_123")
        payload = {
            "data": {"user": None},
            "errors": [
                {
                    "type": "NOT_FOUND",
                    "message": "Could not resolve to a User with the login of 'nobody'.",
                }
            ],
        }

        async with client:
            with patch.object(client._session, "post") as mock_post:
                mock_post.return_value = mock_post_response(json_data=payload)
                with pytest.raises(NotFoundError, match="Could not resolve"):
                    await client._make_graphql_request({"query": "test"})

    @pytest.mark.asyncio
    async def test_graphql_generic_error_preserves_message(self):
        client = GitHubClient(token="valid_token_123")
        payload = {"errors": [{"message": "Something went wrong while executing"}]}

        async with client:
            with patch.object(client._session, "post") as mock_post:
                mock_post.return_value = mock_post_response(json_data=payload)
                with pytest.raises(UpstreamUnavailableError) as exc_info:
                    await client._make_graphql_request({"query": "test"})

        assert "Something went wrong while executing" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_graphql_rate_limited_error_type(self):
        client = GitHubClient(token="valid_token_123")
        payload = {"errors": [{"type": "RATE_LIMITED", "message": "slow down"}]}

        async with client:
            with patch.object(client._session, "post") as mock_post:
                mock_post.return_value = mock_post_response(json_data=payload)
                with pytest.raises(RateLimitError):
                    await client._make_graphql_request({"query": "test"})


class TestFetchOverview:
    """Test paginated overview fetching."""

    @pytest.mark.asyncio
    async def test_single_page(self, overview_page):
        client = GitHubClient(token="valid_token_123")

        with patch.object(
            client, "_make_graphql_request", new_callable=AsyncMock
        ) as mock_request:
            mock_request.return_value = overview_page(total=1)
            overview = await client.fetch_overview("octocat")

        assert overview.login == "octocat"
        assert overview.total_repositories == 1
        assert [r.name for r in overview.repositories] == ["hello-world"]
        assert overview.followers == 100
        mock_request.assert_called_once()

        variables = mock_request.call_args[0][0]["variables"]
        assert variables["userName"] == "octocat"
        assert variables["cursor"] is None
        assert variables["pageSize"] == 100

    @pytest.mark.asyncio
    async def test_follows_cursor(self, overview_page, repository_node):
        client = GitHubClient(token="valid_token_123")
        second = dict(repository_node, name="second")

        with patch.object(
            client, "_make_graphql_request", new_callable=AsyncMock
        ) as mock_request:
            mock_request.side_effect = [
                overview_page(has_next=True, cursor="c1", total=2),
                overview_page(nodes=[second], has_next=False, cursor="c2", total=2),
            ]
            overview = await client.fetch_overview("octocat")

        assert [r.name for r in overview.repositories] == ["hello-world", "second"]
        assert mock_request.call_args_list[1][0][0]["variables"]["cursor"] == "c1"

    @pytest.mark.asyncio
    async def test_profile_and_total_come_from_first_page(self, overview_page):
        client = GitHubClient(token="valid_token_123")
        later = overview_page(has_next=False, total=999)
        later["user"]["followers"] = {"totalCount": 1}

        with patch.object(
            client, "_make_graphql_request", new_callable=AsyncMock
        ) as mock_request:
            mock_request.side_effect = [overview_page(has_next=True, total=2), later]
            overview = await client.fetch_overview("octocat")

        assert overview.total_repositories == 2
        assert overview.followers == 100

    @pytest.mark.asyncio
    @pytest.mark.slow
    async def test_pagination_stops_at_cap(self, overview_page, repository_node):
        client = GitHubClient(token="valid_token_123")
        full_page = [dict(repository_node, name=f"repo-{i}") for i in range(100)]

        with patch.object(
            client, "_make_graphql_request", new_callable=AsyncMock
        ) as mock_request:
            mock_request.return_value = overview_page(
                nodes=full_page, has_next=True, total=5000
            )
            overview = await client.fetch_overview("octocat")

        assert len(overview.repositories) == 1000
        assert overview.total_repositories == 5000
        assert mock_request.call_count == 10

    @pytest.mark.asyncio
    async def test_pagination_terminates_on_empty_pages(self, overview_page):
        client = GitHubClient(token="valid_token_123", max_repos=300)

        with patch.object(
            client, "_make_graphql_request", new_callable=AsyncMock
        ) as mock_request:
            mock_request.return_value = overview_page(nodes=[], has_next=True, total=10)
            overview = await client.fetch_overview("octocat")

        assert overview.repositories == []
        assert mock_request.call_count == 3

    @pytest.mark.asyncio
    async def test_user_not_found(self):
        client = GitHubClient(token="valid_token_123")

        with patch.object(
            client, "_make_graphql_request", new_callable=AsyncMock
        ) as mock_request:
            mock_request.return_value = {"user": None}
            with pytest.raises(NotFoundError, match="ghost"):
                await client.fetch_overview("ghost")

    @pytest.mark.asyncio
    async def test_missing_repositories(self, overview_page):
        client = GitHubClient(token="valid_token_123")
        page = overview_page()
        del page["user"]["repositories"]

        with patch.object(
            client, "_make_graphql_request", new_callable=AsyncMock
        ) as mock_request:
            mock_request.return_value = page
            with pytest.raises(IncompleteDataError):
                await client.fetch_overview("octocat")


class TestFetchContributions:
    """Test contribution calendar fetching."""

    @pytest.mark.asyncio
    async def test_year_window_variables(self, contributions_data):
        client = GitHubClient(token="valid_token_123")

        with patch.object(
            client, "_make_graphql_request", new_callable=AsyncMock
        ) as mock_request:
            mock_request.return_value = contributions_data
            summary = await client.fetch_contributions("octocat", 2023)

        variables = mock_request.call_args[0][0]["variables"]
        assert variables == {
            "userName": "octocat",
            "from": "2023-01-01T00:00:00.000Z",
            "to": "2023-12-31T23:59:59.999Z",
        }
        assert summary.total_contributions == 15
        assert summary.total_commit_contributions == 8

    @pytest.mark.asyncio
    async def test_missing_collection(self):
        client = GitHubClient(token="valid_token_123")

        with patch.object(
            client, "_make_graphql_request", new_callable=AsyncMock
        ) as mock_request:
            mock_request.return_value = {"user": {"contributionsCollection": None}}
            with pytest.raises(IncompleteDataError):
                await client.fetch_contributions("octocat", 2023)

    @pytest.mark.asyncio
    async def test_upstream_error_propagates(self):
        client = GitHubClient(token="valid_token_123")

        with patch.object(
            client, "_make_graphql_request", new_callable=AsyncMock
        ) as mock_request:
            mock_request.side_effect = UpstreamUnavailableError("GitHub API error: boom")
            with pytest.raises(UpstreamUnavailableError, match="boom"):
                await client.fetch_contributions("octocat", 2023)

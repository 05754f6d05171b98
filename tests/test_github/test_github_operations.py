"""Tests for GitHub operator workflows."""

import httpx
import pytest
from cryptography.fernet import Fernet
from nacl import encoding, public

from gitdeck.credentials import CredentialStore, EncryptedFileVault
from gitdeck.errors import GitCommandError, MissingTokenError, RemoteCallError, RemoteUrlError
from gitdeck.github import GitHubClient
from gitdeck.github.operations import MANUAL_ENTRY, GitHubOperations, default_client_factory
from gitdeck.workspace import TargetResolver


class OriginExecutor:
    """Answers ``git remote get-url origin`` with a fixed URL."""

    def __init__(self, url=None):
        self.url = url

    async def run(self, args, target, timeout=None):
        if self.url is None:
            raise GitCommandError("error: No such remote 'origin'", returncode=2)
        return self.url


class Probe:
    async def is_working_copy(self, target):
        return True


class Router:
    """MockTransport handler keyed by "METHOD /path"."""

    def __init__(self, routes):
        self.routes = routes
        self.seen: list[str] = []

    def __call__(self, request):
        key = f"{request.method} {request.url.path}"
        self.seen.append(key)
        if key not in self.routes:
            return httpx.Response(404, json={"message": "Not Found"})
        return self.routes[key]


@pytest.fixture
def build(make_host, invoker, tmp_path):
    def factory(routes=None, url="https://github.com/octo/widgets.git", credentials=None, **host_kwargs):
        host = make_host(candidates=[tmp_path], **host_kwargs)
        router = Router(routes or {})
        ops = GitHubOperations(
            host,
            TargetResolver(host=host, probe=Probe()),
            OriginExecutor(url),
            invoker,
            client_factory=lambda settings: GitHubClient("t", transport=httpx.MockTransport(router)),
            credentials=credentials,
        )
        return ops, host, router

    return factory


@pytest.fixture
def store(tmp_path):
    return CredentialStore(EncryptedFileVault(tmp_path / "vault.bin", Fernet.generate_key()))


def public_key_route():
    key = public.PrivateKey.generate().public_key.encode(encoding.Base64Encoder).decode()
    return httpx.Response(200, json={"key_id": "kid", "key": key})


class TestDefaultClientFactory:
    def test_requires_token(self, settings):
        settings.github_token = None
        settings.github.token = None
        with pytest.raises(MissingTokenError):
            default_client_factory(settings)

    def test_uses_configured_api(self, settings):
        settings.github.api_url = "https://ghe.example.com/api/v3"
        client = default_client_factory(settings)
        assert client.base_url == "https://ghe.example.com/api/v3"
        assert client.timeout == 2.0


class TestRepository:
    """Tests for resolving the origin repository."""

    @pytest.mark.asyncio
    async def test_ssh_origin(self, build):
        ops, host, _ = build(url="git@github.com:octo/widgets.git")
        repo = await ops.repository()
        assert repo.full_name == "octo/widgets"

    @pytest.mark.asyncio
    async def test_missing_origin(self, build):
        ops, host, _ = build(url=None)
        assert await ops.repository() is None
        assert host.said("error") == ["No remote named origin is configured"]

    @pytest.mark.asyncio
    async def test_not_github(self, build):
        ops, host, _ = build(url="https://gitlab.com/octo/widgets.git")
        with pytest.raises(RemoteUrlError):
            await ops.repository()


class TestSecrets:
    """Tests for secret workflows."""

    @pytest.mark.asyncio
    async def test_list_secrets_table(self, build):
        ops, host, _ = build({
            "GET /repos/octo/widgets/actions/secrets": httpx.Response(
                200, json={"secrets": [{"name": "NUGET_API_KEY", "updated_at": "2024-03-05T10:00:00Z"}]}
            )
        })

        await ops.list_secrets()

        assert host.tables == [("Secrets of octo/widgets", [("NUGET_API_KEY", "2024-03-05")])]

    @pytest.mark.asyncio
    async def test_listing_leaves_credential_store_closed(self, build):
        """Test only picking a secret value opens the local credential store."""
        opened = []
        ops, host, _ = build(
            {"GET /repos/octo/widgets/actions/secrets": httpx.Response(200, json={"secrets": []})},
            credentials=lambda: opened.append(1),
        )

        await ops.list_secrets()

        assert opened == []

    @pytest.mark.asyncio
    async def test_list_secrets_access_hint(self, build):
        """Test a 403 gets the admin access hint."""
        ops, host, _ = build({
            "GET /repos/octo/widgets/actions/secrets": httpx.Response(403, json={"message": "Forbidden"})
        })

        with pytest.raises(RemoteCallError) as exc_info:
            await ops.list_secrets()

        assert "admin access" in exc_info.value.message
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_create_secret_manual_value(self, build):
        """Test creating a secret with a typed value when nothing is saved."""
        ops, host, router = build(
            {
                "GET /repos/octo/widgets/actions/secrets/public-key": public_key_route(),
                "PUT /repos/octo/widgets/actions/secrets/DEPLOY_KEY": httpx.Response(201),
            },
            answers=["DEPLOY_KEY", "value-123"],
            confirms=[True],
        )

        await ops.create_secret()

        assert "PUT /repos/octo/widgets/actions/secrets/DEPLOY_KEY" in router.seen
        assert host.said("info") == ["Secret DEPLOY_KEY created in octo/widgets"]

    @pytest.mark.asyncio
    async def test_create_secret_from_saved_credential(self, build, store):
        store.save("NuGet", "saved-value", "nuget.org key")
        ops, host, router = build(
            {
                "GET /repos/octo/widgets/actions/secrets/public-key": public_key_route(),
                "PUT /repos/octo/widgets/actions/secrets/NUGET_API_KEY": httpx.Response(204),
            },
            credentials=lambda: store,
            answers=["NUGET_API_KEY"],
            choices=[1],
        )

        await ops.create_secret()

        _, choices = host.prompts[-1]
        assert choices[0].value is MANUAL_ENTRY
        assert choices[1].label == "NuGet"
        assert host.said("info") == ["Secret NUGET_API_KEY updated in octo/widgets"]

    @pytest.mark.asyncio
    async def test_pick_manual_entry_over_saved(self, build, store):
        store.save("NuGet", "saved-value")
        ops, host, _ = build(credentials=lambda: store, choices=[0], answers=["typed"])

        assert await ops.pick_secret_value() == "typed"

    @pytest.mark.asyncio
    async def test_create_secret_declined_manual_entry(self, build):
        ops, host, router = build(answers=["DEPLOY_KEY"], confirms=[False])

        await ops.create_secret()

        assert not any(key.startswith("PUT") for key in router.seen)

    @pytest.mark.asyncio
    async def test_delete_secret(self, build):
        ops, host, router = build(
            {
                "GET /repos/octo/widgets/actions/secrets": httpx.Response(
                    200, json={"secrets": [{"name": "A"}, {"name": "B"}]}
                ),
                "DELETE /repos/octo/widgets/actions/secrets/B": httpx.Response(204),
            },
            choices=[1],
            confirms=[True],
        )

        await ops.delete_secret()

        assert router.seen[-1] == "DELETE /repos/octo/widgets/actions/secrets/B"
        assert host.said("info") == ["Secret B deleted"]


class TestRuns:
    """Tests for the workflow run cleanup."""

    RUNS = {
        "workflow_runs": [
            {"id": 9001, "run_number": 41, "name": "CI", "status": "completed", "conclusion": "success"},
            {"id": 9002, "run_number": 42, "name": "CI", "status": "completed", "conclusion": "failure"},
        ]
    }

    @pytest.mark.asyncio
    async def test_delete_selected_runs(self, build):
        ops, host, router = build(
            {
                "GET /repos/octo/widgets/actions/runs": httpx.Response(200, json=self.RUNS),
                "DELETE /repos/octo/widgets/actions/runs/9001": httpx.Response(204),
                "DELETE /repos/octo/widgets/actions/runs/9002": httpx.Response(204),
            },
            many=[[0, 1]],
            confirms=[True],
        )

        await ops.delete_runs()

        _, choices = host.prompts[-1]
        assert [c.label for c in choices] == ["✅ #41 CI (success)", "❌ #42 CI (failure)"]
        assert host.said("info") == ["Deleted 2 run(s)"]

    @pytest.mark.asyncio
    async def test_partial_failure_is_a_warning(self, build):
        ops, host, router = build(
            {
                "GET /repos/octo/widgets/actions/runs": httpx.Response(200, json=self.RUNS),
                "DELETE /repos/octo/widgets/actions/runs/9001": httpx.Response(204),
            },
            many=[[0, 1]],
            confirms=[True],
        )

        await ops.delete_runs()

        assert host.said("warn") == ["Deleted 1 run(s), 1 failed"]

    @pytest.mark.asyncio
    async def test_no_runs(self, build):
        ops, host, _ = build(
            {"GET /repos/octo/widgets/actions/runs": httpx.Response(200, json={"workflow_runs": []})}
        )

        await ops.delete_runs()

        assert host.said("info") == ["No workflow runs"]


class TestPages:
    @pytest.mark.asyncio
    async def test_open_pages(self, build):
        ops, host, _ = build()

        await ops.open_secrets_page()
        await ops.open_actions_page()

        assert host.opened == [
            "https://github.com/octo/widgets/settings/secrets/actions",
            "https://github.com/octo/widgets/actions",
        ]

"""Tests for publishing and the release command."""

import asyncio
from pathlib import Path

import pytest

from wyvern.commands import (
    AddOwnerCommand,
    CommandContext,
    Publisher,
    ReleaseCommand,
    ReleaseOptions,
    resolve_publish_token,
)
from wyvern.errors import RegistryError, VerificationFailure
from wyvern.workspace import Package, Workspace


@pytest.fixture(autouse=True)
def registry_env(monkeypatch, temp_dir: Path):
    monkeypatch.setenv("CARGO_REGISTRY_TOKEN", "env-token")
    monkeypatch.setenv("CARGO_HOME", str(temp_dir / "cargo-home"))


@pytest.fixture
def crate(make_package):
    """A package with a manifest and sources on disk."""
    def make(name: str) -> Package:
        pkg = make_package(name)
        (pkg.path / "src").mkdir(parents=True)
        pkg.manifest_path.write_text(f'[package]\nname = "{name}"\nversion = "1.0.0"\n')
        (pkg.path / "src" / "lib.rs").write_text(f"//! {name}\n")
        return pkg

    return make


@pytest.fixture
def publisher(registry, toolchain, reporter, temp_dir: Path) -> Publisher:
    return Publisher(
        registry, toolchain, reporter, rate_limit_delay=0, target_root=temp_dir / "publish"
    )


class TestPublisher:
    """Publishing a batch of packages."""

    async def test_publishes_in_order(self, publisher, registry, crate):
        packages = [crate(n) for n in ("a", "b", "c")]

        report = await publisher.publish_all(packages, token="t")

        assert report.published == ["a", "b", "c"]
        assert registry.published == ["a", "b", "c"]
        assert registry.tokens == ["t", "t", "t"]
        assert not report.cancelled
        # every publish gets a fresh target directory that is cleaned up
        assert len(set(registry.target_dirs)) == 3
        assert not any(d.exists() for d in registry.target_dirs)

    async def test_publishes_from_unpacked_copy(self, publisher, registry, toolchain, crate):
        pkg = crate("a")

        await publisher.publish_all([pkg], token=None)

        ((manifest, text),) = registry.manifests
        assert manifest.parent.name == "a-1.0.0"
        assert manifest.parent.parent.name == "src"
        assert pkg.path not in manifest.parents
        # its own workspace root, so no parent workspace applies
        assert "[workspace]" in text
        assert "[workspace]" not in pkg.manifest_path.read_text()
        assert toolchain.packed == ["a"]
        assert not manifest.exists()

    async def test_reuses_checked_archive(self, publisher, registry, toolchain, crate, temp_dir):
        pkg = crate("a")
        archive = await toolchain.package(pkg, temp_dir / "checked")

        await publisher.publish_all([pkg], token=None, archives={"a": archive})

        assert toolchain.packed == ["a"]
        assert registry.published == ["a"]

    async def test_packaging_failure_reports_what_went_out(
        self, publisher, registry, toolchain, crate
    ):
        toolchain.package_failures = {"b"}

        with pytest.raises(RegistryError) as exc_info:
            await publisher.publish_all([crate("a"), crate("b")], token=None)

        assert exc_info.value.package == "b"
        assert exc_info.value.published == ["a"]
        assert registry.published == ["a"]

    async def test_rejection_reports_what_went_out(self, publisher, registry, crate):
        registry.rejected = {"b"}

        with pytest.raises(RegistryError) as exc_info:
            await publisher.publish_all([crate(n) for n in ("a", "b", "c")], token=None)

        assert exc_info.value.package == "b"
        assert exc_info.value.published == ["a"]
        assert "already uploaded" in str(exc_info.value)
        assert "Already published: a" in str(exc_info.value)
        assert registry.published == ["a"]

    async def test_owner_is_added_after_publish(self, publisher, registry, crate, reporter):
        registry.already_owned = {"b"}

        await publisher.publish_all(
            [crate("a"), crate("b")], token=None, owner="github:org:team"
        )

        assert registry.owners == [("a", "github:org:team")]
        assert "github:org:team is already an owner of b" in reporter.out

    async def test_owner_failure(self, publisher, registry, crate):
        registry.owner_failures = {"a"}

        with pytest.raises(RegistryError) as exc_info:
            await publisher.publish_all([crate("a")], token=None, owner="someone")

        assert exc_info.value.published == ["a"]
        assert "forbidden" in str(exc_info.value)

    async def test_dry_run_skips_owner(self, publisher, registry, crate):
        await publisher.publish_all([crate("a")], token=None, dry_run=True, owner="x")

        assert registry.dry_runs == [True]
        assert registry.owners == []

    def test_rate_limit_applies_above_threshold(self, registry, toolchain, reporter):
        publisher = Publisher(
            registry, toolchain, reporter, rate_limit_threshold=2, rate_limit_delay=5
        )

        assert publisher.delay_for(2) == 0
        assert publisher.delay_for(3) == 5

    async def test_waits_between_publishes(self, registry, toolchain, reporter, crate):
        publisher = Publisher(
            registry, toolchain, reporter, rate_limit_threshold=1, rate_limit_delay=0.01
        )

        report = await publisher.publish_all([crate("a"), crate("b")], token=None)

        assert report.published == ["a", "b"]
        assert reporter.out.count("API limits require us to wait") == 1

    async def test_cancel_between_publishes(self, publisher, registry, crate):
        cancel = asyncio.Event()
        registry.on_publish = lambda name: cancel.set() if name == "a" else None

        report = await publisher.publish_all(
            [crate(n) for n in ("a", "b", "c")], token=None, cancel_event=cancel
        )

        assert report.cancelled
        assert report.published == ["a"]
        assert report.pending == ["b", "c"]

    async def test_cancel_ends_rate_limit_wait(self, registry, toolchain, reporter, crate):
        publisher = Publisher(
            registry, toolchain, reporter, rate_limit_threshold=0, rate_limit_delay=60
        )
        cancel = asyncio.Event()
        registry.on_publish = lambda name: asyncio.get_running_loop().call_later(0.01, cancel.set)

        report = await asyncio.wait_for(
            publisher.publish_all(
                [crate("a"), crate("b")], token=None, cancel_event=cancel
            ),
            timeout=5,
        )

        assert report.published == ["a"]
        assert report.pending == ["b"]


class TestResolvePublishToken:
    """Token lookup for the configured registry."""

    def test_flag_wins(self, workspace):
        assert resolve_publish_token(workspace, "flag", {"CARGO_REGISTRY_TOKEN": "env"}) == "flag"

    def test_default_environment(self, workspace, temp_dir: Path):
        environ = {"CARGO_REGISTRY_TOKEN": "env", "CARGO_HOME": str(temp_dir)}
        assert resolve_publish_token(workspace, None, environ) == "env"

    def test_alternative_registry(self, workspace_dir: Path, temp_dir: Path):
        (workspace_dir / "wyvern.yaml").write_text("publish:\n  registry: my-registry\n")
        ws = Workspace.discover(workspace_dir)
        environ = {
            "CARGO_REGISTRY_TOKEN": "wrong",
            "CARGO_REGISTRIES_MY_REGISTRY_TOKEN": "right",
            "CARGO_HOME": str(temp_dir),
        }

        assert resolve_publish_token(ws, None, environ) == "right"

    def test_configured_credentials_file(self, workspace_dir: Path):
        (workspace_dir / "creds.toml").write_text('[registry]\ntoken = "from-file"\n')
        (workspace_dir / "wyvern.yaml").write_text("publish:\n  credentials_file: creds.toml\n")
        ws = Workspace.discover(workspace_dir)

        assert resolve_publish_token(ws, None, {}) == "from-file"


class TestReleaseCommand:
    """Check and publish end to end with fakes."""

    async def test_release(self, context: CommandContext, toolchain, registry):
        result = await ReleaseCommand(context, toolchain=toolchain, registry=registry).execute()

        assert [p.name for p in result.packages] == ["core", "utils", "app"]
        assert toolchain.packed == ["core", "utils", "app"]
        assert registry.published == ["core", "utils", "app"]
        assert registry.tokens == ["env-token"] * 3
        assert registry.dry_runs == [False] * 3

    async def test_publish_manifests_lie_outside_the_workspace(
        self, context: CommandContext, workspace_dir: Path, toolchain, registry
    ):
        await ReleaseCommand(context, toolchain=toolchain, registry=registry).execute()

        manifests = [m for m, _ in registry.manifests]
        assert [m.parent.name for m in manifests] == ["core-1.0.0", "utils-1.0.0", "app-1.0.0"]
        for manifest, text in registry.manifests:
            assert workspace_dir / "crates" not in manifest.parents
            assert manifest != workspace_dir / "Cargo.toml"
            assert "[workspace]" in text
        # the archives from the check are published, not packed again
        assert toolchain.packed == ["core", "utils", "app"]

    async def test_no_check(self, context: CommandContext, toolchain, registry):
        options = ReleaseOptions(no_check=True, dry_run=True, token="flag")

        await ReleaseCommand(context, options, toolchain=toolchain, registry=registry).execute()

        assert toolchain.packed == ["core", "utils", "app"]
        assert toolchain.calls == []
        assert registry.tokens == ["flag"] * 3
        assert registry.dry_runs == [True] * 3

    async def test_context_dry_run(self, workspace, reporter, toolchain, registry):
        context = CommandContext(workspace, reporter=reporter, dry_run=True)

        await ReleaseCommand(context, toolchain=toolchain, registry=registry).execute()

        assert registry.dry_runs == [True] * 3

    async def test_failed_check_publishes_nothing(self, context: CommandContext, toolchain, registry):
        toolchain.failing = {"app"}

        with pytest.raises(VerificationFailure):
            await ReleaseCommand(context, toolchain=toolchain, registry=registry).execute()

        assert registry.published == []

    async def test_configured_owner(self, context: CommandContext, workspace_dir: Path, toolchain, registry):
        (workspace_dir / "wyvern.yaml").write_text("publish:\n  owner: github:org:release\n")
        context.refresh()

        await ReleaseCommand(context, toolchain=toolchain, registry=registry).execute()

        assert registry.owners == [
            ("core", "github:org:release"),
            ("utils", "github:org:release"),
            ("app", "github:org:release"),
        ]

    async def test_cancelled_release(self, context: CommandContext, toolchain, registry):
        cancel = asyncio.Event()
        registry.on_publish = lambda name: cancel.set()

        result = await ReleaseCommand(
            context, toolchain=toolchain, registry=registry, cancel_event=cancel
        ).execute()

        assert result.report.published == ["core"]
        assert result.report.pending == ["utils", "app"]
        assert "Release cancelled after 1 packages" in context.reporter.err


async def test_add_owner_command(context: CommandContext, registry):
    registry.already_owned = {"core"}

    result = await AddOwnerCommand(context, "github:org:team", registry=registry).execute()

    assert result.added == ["app", "utils"]
    assert result.already == ["core"]

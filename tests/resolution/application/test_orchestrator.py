"""
Tests for ManifestOrchestrator.

Uses the in-memory backend from conftest to check fetch counts, default
source paths, the ignore annotation and per-document failure isolation.
"""

import copy

import pytest

from vaultfill.adapters import SecretAdapter
from vaultfill.resolution.application.orchestrator import ManifestOrchestrator, is_ignored
from vaultfill.resolution.domain.models import ErrorCause
from vaultfill.resolution.domain.placeholder import SecretIndex
from vaultfill.shared.domain.exceptions import (
    AuthError,
    ConfigurationError,
    FetchError,
    FetchFailure,
    SerializationError,
)


@pytest.fixture
def configmap_template():
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {
            "name": "orders-settings",
            "annotations": {"avp.kubernetes.io/path": "secret/data/app"},
        },
        "data": {"DB_PORT": "<port>", "DB_USER": "<username>"},
    }


class TestBatch:
    """Test batch-level behavior."""

    @pytest.mark.asyncio
    async def test_shared_path_is_fetched_once(
        self, make_backend, secret_template, deployment_template, configmap_template
    ):
        backend = make_backend()
        orchestrator = ManifestOrchestrator(backend)

        results = await orchestrator.resolve_batch([secret_template, deployment_template, configmap_template])

        assert all(r.ok for r in results)
        assert backend.fetch_calls == [("secret/data/app", None)]
        assert orchestrator.cache.fetch_count == 1

    @pytest.mark.asyncio
    async def test_results_keep_input_order(self, make_backend, secret_template, deployment_template):
        results = await ManifestOrchestrator(make_backend()).resolve_batch(
            [deployment_template, secret_template, deployment_template]
        )

        assert [r.index for r in results] == [0, 1, 2]
        assert [r.kind for r in results] == ["Deployment", "Secret", "Deployment"]

    @pytest.mark.asyncio
    async def test_missing_key_is_isolated_to_its_document(
        self, make_backend, secret_template, deployment_template
    ):
        secret_template["data"]["password"] = "<nope>"

        broken, fine = await ManifestOrchestrator(make_backend()).resolve_batch(
            [secret_template, deployment_template]
        )

        assert not broken.ok
        assert broken.output is None
        assert [(e.field_path, e.cause) for e in broken.errors] == [("data.password", ErrorCause.KEY_NOT_FOUND)]
        assert broken.failures()[0][0] == "data.password"
        assert fine.ok
        assert fine.output["spec"]["replicas"] == 3

    @pytest.mark.asyncio
    async def test_unexpected_backend_error_is_isolated_to_its_document(
        self, make_backend, secret_template, deployment_template
    ):
        secret_template["metadata"]["annotations"]["avp.kubernetes.io/path"] = "secret/data/bad"
        backend = make_backend(failures={"secret/data/bad": KeyError("id")})

        broken, fine = await ManifestOrchestrator(backend).resolve_batch([secret_template, deployment_template])

        assert isinstance(broken.fatal, FetchError)
        assert broken.fatal.reason == FetchFailure.INVALID_RESPONSE
        assert fine.ok
        assert fine.output["spec"]["replicas"] == 3

    @pytest.mark.asyncio
    async def test_empty_documents_are_skipped(self, make_backend, secret_template):
        results = await ManifestOrchestrator(make_backend()).resolve_batch([None, {}, secret_template])

        assert [r.skipped for r in results] == [True, True, False]
        assert all(r.ok for r in results)

    @pytest.mark.asyncio
    async def test_existing_session_is_reused(self, make_backend, secret_template):
        backend = make_backend()

        await ManifestOrchestrator(backend).resolve_batch([secret_template])

        assert backend.logins == 0

    @pytest.mark.asyncio
    async def test_logs_in_when_session_is_invalid(self, make_backend, secret_template):
        backend = make_backend(authenticated=False)

        results = await ManifestOrchestrator(backend).resolve_batch([secret_template])

        assert backend.logins == 1
        assert results[0].ok

    @pytest.mark.asyncio
    async def test_auth_failure_stops_the_run(self, make_backend, secret_template):
        backend = make_backend(authenticated=False, login_fails=True)

        with pytest.raises(AuthError):
            await ManifestOrchestrator(backend).resolve_batch([secret_template])

        assert backend.fetch_calls == []


class TestSourcePath:
    """Test default source path selection."""

    @pytest.mark.asyncio
    async def test_prefix_and_kind(self, make_backend):
        backend = make_backend(secrets={"secret/data/secret": {"password": "from-prefix"}})
        document = {
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": {"name": "app"},
            "stringData": {"password": "<password>"},
        }

        result = await ManifestOrchestrator(backend, path_prefix="secret/data/").resolve_document(document)

        assert result.ok
        assert result.output["stringData"]["password"] == "from-prefix"
        assert backend.fetch_calls == [("secret/data/secret", None)]

    def test_annotation_overrides_prefix(self, make_backend, secret_template):
        orchestrator = ManifestOrchestrator(make_backend(), path_prefix="secret/data")

        assert orchestrator.source_path_for(secret_template) == "secret/data/app"

    def test_legacy_annotation(self, make_backend):
        document = {"kind": "Secret", "metadata": {"annotations": {"avp_path": "/kv/legacy/"}}}

        assert ManifestOrchestrator(make_backend()).source_path_for(document) == "kv/legacy"

    @pytest.mark.asyncio
    async def test_no_source_path_is_document_fatal(self, make_backend, secret_template):
        del secret_template["metadata"]["annotations"]
        backend = make_backend()

        result = await ManifestOrchestrator(backend).resolve_document(secret_template)

        assert isinstance(result.fatal, ConfigurationError)
        assert result.output is None
        assert backend.fetch_calls == []

    @pytest.mark.asyncio
    async def test_explicit_markers_need_no_default_path(self, make_backend):
        backend = make_backend()
        document = {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": {"name": "settings"},
            "data": {"user": "<path:secret/data/app#username>"},
        }

        result = await ManifestOrchestrator(backend).resolve_document(document)

        assert result.ok
        assert result.output["data"] == {"user": "admin"}

    @pytest.mark.asyncio
    async def test_pinned_version_is_fetched_separately(self, make_backend):
        backend = make_backend(versions={("secret/data/app", "2"): {"password": "v2"}})
        document = {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": {"name": "settings"},
            "data": {
                "current": "<path:secret/data/app#password>",
                "pinned": "<path:secret/data/app#password#2>",
            },
        }

        result = await ManifestOrchestrator(backend).resolve_document(document)

        assert result.output["data"] == {"current": "s3cr3t", "pinned": "v2"}
        assert sorted(backend.fetch_calls, key=str) == sorted(
            [("secret/data/app", None), ("secret/data/app", "2")], key=str
        )


class TestDocumentFailures:
    """Test how failures are attributed."""

    @pytest.mark.asyncio
    async def test_explicit_fetch_failure_is_field_local(self, make_backend, deployment_template):
        env = deployment_template["spec"]["template"]["spec"]["containers"][0]["env"]
        env.append({"name": "API_KEY", "value": "<path:secret/data/gone#key>"})

        result = await ManifestOrchestrator(make_backend()).resolve_document(deployment_template)

        assert result.fatal is None
        assert [(e.field_path, e.cause) for e in result.errors] == [
            ("spec.template.spec.containers[0].env[2].value", ErrorCause.FETCH_FAILED)
        ]

    @pytest.mark.asyncio
    async def test_default_path_failure_is_document_fatal(self, make_backend, secret_template):
        secret_template["metadata"]["annotations"]["avp.kubernetes.io/path"] = "secret/data/gone"

        result = await ManifestOrchestrator(make_backend()).resolve_document(secret_template)

        assert isinstance(result.fatal, FetchError)
        assert result.fatal.reason == FetchFailure.NOT_FOUND
        assert result.failures() == [("<document>", str(result.fatal))]

    @pytest.mark.asyncio
    async def test_invalid_result_is_document_fatal(self, make_backend):
        document = {"apiVersion": "apps/v1", "kind": "Deployment", "metadata": {"namespace": "prod"}}

        result = await ManifestOrchestrator(make_backend()).resolve_document(document)

        assert isinstance(result.fatal, SerializationError)

    @pytest.mark.asyncio
    async def test_non_mapping_document(self, make_backend):
        result = await ManifestOrchestrator(make_backend()).resolve_document("just text", index=4)

        assert isinstance(result.fatal, ConfigurationError)
        assert result.index == 4


class TestIgnoreAndIdempotence:
    """Test pass-through cases."""

    @pytest.mark.parametrize(
        "annotations",
        [{"avp.kubernetes.io/ignore": "true"}, {"avp_ignore": "True"}, {"avp_ignore": True}],
    )
    def test_is_ignored(self, annotations):
        assert is_ignored({"metadata": {"annotations": annotations}})

    def test_not_ignored(self):
        assert not is_ignored({"metadata": {"annotations": {"avp.kubernetes.io/ignore": "false"}}})
        assert not is_ignored({"metadata": None})

    @pytest.mark.asyncio
    async def test_ignored_document_passes_through(self, make_backend, secret_template):
        secret_template["metadata"]["annotations"]["avp.kubernetes.io/ignore"] = "true"
        backend = make_backend()

        result = await ManifestOrchestrator(backend).resolve_document(copy.deepcopy(secret_template))

        assert result.ok
        assert result.output == secret_template
        assert backend.fetch_calls == []

    @pytest.mark.asyncio
    async def test_resolving_resolved_output_is_a_no_op(self, make_backend, deployment_template):
        orchestrator = ManifestOrchestrator(make_backend())

        first = await orchestrator.resolve_document(deployment_template)
        second = await orchestrator.resolve_document(first.output)

        assert second.ok
        assert second.output == first.output

    def test_secret_substitution_is_idempotent(self, app_secrets, secret_template):
        adapter = SecretAdapter()
        index = SecretIndex(default_data=app_secrets, default_path="secret/data/app")

        once = adapter.substitute(secret_template, index).value
        twice = adapter.substitute(once, index).value

        assert twice == once

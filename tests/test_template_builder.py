"""Unit tests for the GCP template builder."""

import io
import json
import logging
import zipfile

import pytest

from fnbundle import data_models
from fnbundle import exceptions
from fnbundle import registry
from fnbundle.backends import abstract_backend
from fnbundle.backends import gcp_backend
from fnbundle.backends import gcp_functions


@pytest.fixture
def fnbundle_logs(caplog):
    # The package logger does not propagate to the root logger.
    logger = logging.getLogger("fnbundle")
    logger.addHandler(caplog.handler)
    yield caplog
    logger.removeHandler(caplog.handler)


class LocalOnlyFunction:
    """A registered function that cannot be deployed."""

    def run(self):
        return None


class TestConstruction:
    @pytest.mark.parametrize("missing", ["project_id", "location_id", "storage_name"])
    def test_missing_setting_raises(self, gcp_config, provider, missing):
        del gcp_config[missing]
        with pytest.raises(exceptions.ConfigurationError, match=missing):
            gcp_backend.GCPTemplateBuilder(gcp_config, provider)

    def test_empty_setting_raises(self, gcp_config, provider):
        gcp_config["project_id"] = ""
        with pytest.raises(exceptions.ConfigurationError):
            gcp_backend.GCPTemplateBuilder(gcp_config, provider)

    def test_package_root_from_env(self, gcp_config, provider, monkeypatch):
        monkeypatch.setenv("FNBUNDLE_PACKAGE_ROOT", "/srv/functions")
        builder = gcp_backend.GCPTemplateBuilder(gcp_config, provider)
        assert builder.package_root == "/srv/functions"


class TestBuild:
    def test_storage_scenario(self, builder):
        data = builder.build("es-storage")
        body = data.request_body

        assert body["timeout"] == "30s"
        assert body["memorySize"] == 256
        assert body["entryPoint"] == "Handle"
        assert body["description"] == "sync events"
        for key in ("serviceAccountEmail", "labels", "maxInstances", "vpcConnector"):
            assert key not in body

        names = zipfile.ZipFile(io.BytesIO(data.raw)).namelist()
        assert len(names) == 3
        assert all(n.startswith("pkg/storage/") for n in names)

    def test_pubsub_has_every_field(self, builder):
        body = builder.build("es-pubsub").request_body
        assert len(body) == 11
        assert body["maxInstances"] == 5
        assert body["labels"] == {"team": "observability"}

    def test_build_is_repeatable(self, builder):
        assert builder.build("es-storage").raw == builder.build("es-storage").raw

    def test_unknown_function(self, builder):
        with pytest.raises(exceptions.FunctionNotFoundError):
            builder.build("missing-fn")

    def test_disabled_function_is_not_found(self, builder):
        with pytest.raises(exceptions.FunctionNotFoundError):
            builder.build("disabled-fn")

    def test_missing_sources(self, gcp_config, provider, tmp_path):
        builder = gcp_backend.GCPTemplateBuilder(
            gcp_config, provider, package_root=str(tmp_path)
        )
        with pytest.raises(exceptions.ArchiveError):
            builder.build("es-storage")


class TestBuildLogging:
    def test_archive_size_is_logged(self, builder, fnbundle_logs):
        data = builder.build("es-storage")

        assert "Compressing all assets into an artifact" in fnbundle_logs.messages
        assert (
            f"Compression is successful (zip size: {len(data.raw)} bytes)"
            in fnbundle_logs.messages
        )

    def test_nothing_logged_on_failure(self, gcp_config, provider, tmp_path, fnbundle_logs):
        builder = gcp_backend.GCPTemplateBuilder(
            gcp_config, provider, package_root=str(tmp_path)
        )
        with pytest.raises(exceptions.ArchiveError):
            builder.build("es-storage")

        assert not any(
            m.startswith("Compression is successful") for m in fnbundle_logs.messages
        )


class TestRawTemplate:
    def test_is_json_of_request_body(self, builder):
        text = builder.raw_template("es-storage")
        assert json.loads(text) == builder.build("es-storage").request_body

    def test_does_not_need_sources(self, gcp_config, provider, tmp_path):
        builder = gcp_backend.GCPTemplateBuilder(
            gcp_config, provider, package_root=str(tmp_path)
        )
        assert "es-storage" in builder.raw_template("es-storage")

    def test_unknown_function(self, builder):
        with pytest.raises(exceptions.FunctionNotFoundError):
            builder.raw_template("missing-fn")


class TestFindFunction:
    def test_returns_installable_function(self, provider):
        fn = gcp_backend.find_function(provider, "es-storage")

        assert isinstance(fn, abstract_backend.InstallableFunction)
        assert fn.name() == "storage"
        assert isinstance(fn.config(), data_models.StorageFunctionConfig)

    def test_unknown_name(self, provider):
        with pytest.raises(exceptions.FunctionNotFoundError):
            gcp_backend.find_function(provider, "missing-fn")

    def test_incompatible_function(self):
        function_registry = registry.FunctionRegistry()
        function_registry.register("gcp", "local", lambda raw: LocalOnlyFunction())
        provider = registry.Provider(
            "gcp", [{"name": "runner", "type": "local"}], function_registry
        )

        with pytest.raises(exceptions.IncompatibleFunctionError, match="LocalOnlyFunction"):
            gcp_backend.find_function(provider, "runner")


class TestZipResources:
    def test_resources_for_type(self):
        resources = gcp_backend.zip_resources_for("storage")
        assert resources == [
            data_models.FileResource("pkg/storage/storage.py", 0o755),
            data_models.FileResource("pkg/storage/requirements.txt", 0o655),
            data_models.FileResource("pkg/storage/constraints.txt", 0o655),
        ]

    def test_resources_are_grouped_per_type(self):
        function_registry = registry.FunctionRegistry()
        for type_name in ("storage", "pubsub"):
            function_registry.register("gcp", type_name, lambda raw: None)

        resources = gcp_backend.zip_resources(function_registry)

        assert len(resources) == 6
        assert [r.path.split("/")[1] for r in resources] == ["storage"] * 3 + ["pubsub"] * 3

    def test_other_providers_are_ignored(self):
        function_registry = registry.FunctionRegistry()
        function_registry.register("aws", "sqs", lambda raw: None)
        assert gcp_backend.zip_resources(function_registry) == []

    def test_builtin_types(self, builder):
        resources = builder.zip_resources()
        assert [r.path for r in resources[::3]] == [
            "pkg/pubsub/pubsub.py",
            "pkg/storage/storage.py",
        ]


class TestBuiltinFunctions:
    def test_registered_in_order(self):
        assert registry.REGISTRY.list_functions("gcp") == ["pubsub", "storage"]

    def test_pubsub_defaults(self):
        fn = gcp_functions.PubSubFunction.from_config(
            {"name": "f", "trigger": {"resource": "projects/p/topics/t"}}
        )
        config = fn.config()

        assert fn.name() == "pubsub"
        assert config.entry_point == "run_pubsub"
        assert config.trigger.event_type == "google.pubsub.topic.publish"
        assert config.memory_size == 0

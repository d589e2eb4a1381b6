"""Shared fixtures for fnbundle tests."""

import pytest

from fnbundle import registry
from fnbundle.backends import gcp_backend

FUNCTION_TYPES = ("pubsub", "storage")


@pytest.fixture
def package_root(tmp_path):
    """A build root holding the sources of every GCP function type."""
    for type_name in FUNCTION_TYPES:
        pkg = tmp_path / "pkg" / type_name
        pkg.mkdir(parents=True)
        (pkg / f"{type_name}.py").write_text(
            f"def handle(event, context):\n    return {type_name!r}\n"
        )
        (pkg / "requirements.txt").write_text("functions-framework==3.5.0\n")
        (pkg / "constraints.txt").write_text("click==8.1.7\n")
    return tmp_path


@pytest.fixture
def gcp_config():
    return {
        "project_id": "my-project",
        "location_id": "europe-west2",
        "storage_name": "fn-artifacts",
    }


@pytest.fixture
def functions_config():
    return [
        {
            "name": "es-storage",
            "type": "storage",
            "description": "sync events",
            "entry_point": "Handle",
            "timeout": "30s",
            "memory_size": 256,
            "trigger": {"resource": "projects/_/buckets/events"},
        },
        {
            "name": "es-pubsub",
            "type": "pubsub",
            "description": "ship topic messages",
            "trigger": {"resource": "projects/my-project/topics/logs"},
            "service_account_email": "fn@my-project.iam.gserviceaccount.com",
            "labels": {"team": "observability"},
            "maximum_instances": 5,
            "vpc_connector": "projects/my-project/locations/europe-west2/connectors/vpc",
        },
        {
            "name": "disabled-fn",
            "type": "pubsub",
            "enabled": False,
            "trigger": {"resource": "projects/my-project/topics/off"},
        },
    ]


@pytest.fixture
def provider(functions_config):
    return registry.Provider("gcp", functions_config)


@pytest.fixture
def builder(gcp_config, provider, package_root):
    return gcp_backend.GCPTemplateBuilder(
        gcp_config, provider, package_root=str(package_root)
    )

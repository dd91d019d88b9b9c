import pytest

from fhirmodel.main import build_registry


@pytest.fixture(scope="session")
def registry():
    """Built-in schemas only, frozen; shared read-only across tests."""
    return build_registry(schema_dir="")

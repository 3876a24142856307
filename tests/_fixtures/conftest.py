import json

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from polyfactory.factories.pydantic_factory import ModelFactory

from cdn_invalidator.cdn.models import Operation
from tests._fixtures.remote_api_responses import OPERATION_ID, canned_api_factory


class OperationFactory(ModelFactory[Operation]):
    __model__ = Operation

    # sensible defaults for tests; override in calls
    id = OPERATION_ID
    done = False
    error = None
    metadata = None
    response = None


@pytest.fixture
def operation_factory():
    """Return the OperationFactory class, e.g. `operation_factory.build(done=True)`."""
    return OperationFactory


@pytest.fixture(scope="session")
def rsa_private_key_pem() -> str:
    """PKCS#8 PEM private key generated once per session."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture
def service_account_key_dict(rsa_private_key_pem):
    return {
        "id": "ajekeyid0001",
        "service_account_id": "ajeserviceaccount",
        "created_at": "2024-01-01T00:00:00Z",
        "key_algorithm": "RSA_2048",
        "public_key": "-----BEGIN PUBLIC KEY-----\n...\n-----END PUBLIC KEY-----\n",
        "private_key": rsa_private_key_pem,
    }


@pytest.fixture
def service_account_key_json(service_account_key_dict) -> str:
    return json.dumps(service_account_key_dict)


@pytest.fixture
def fake_http_response():
    """Expose the canned response factory as a fixture."""
    return canned_api_factory

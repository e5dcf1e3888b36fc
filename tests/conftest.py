import io
from unittest.mock import MagicMock

import pytest

SAMPLE_CSV = "First Name,Last Name\nAda,Lovelace\nAlan,Turing\n"


def make_s3_client(content: str = SAMPLE_CSV) -> MagicMock:
    client = MagicMock()
    client.get_object.return_value = {"Body": io.BytesIO(content.encode("utf-8"))}
    client.copy_object.return_value = {}
    client.delete_object.return_value = {}
    return client


@pytest.fixture
def s3_client():
    """Fake S3 client serving the sample CSV."""
    return make_s3_client()


@pytest.fixture
def sfn_client():
    """Fake Step Functions client."""
    client = MagicMock()
    client.start_execution.return_value = {
        "executionArn": "arn:aws:states:us-east-2:000000000000:execution:ETL-Customer-Data-Pipeline:test",
    }
    return client


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "sqlite-data" / "customer_data.db")


@pytest.fixture
def direct_event():
    return {"bucketName": "customer-uploads", "objectKey": "incoming/customers.csv"}


@pytest.fixture
def s3_event():
    return {
        "Records": [
            {
                "s3": {
                    "bucket": {"name": "customer-uploads"},
                    "object": {"key": "incoming/customers.csv"},
                }
            }
        ]
    }

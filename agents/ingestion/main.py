import os
import csv
import json
import uuid
import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import unquote_plus

from botocore.exceptions import BotoCoreError, ClientError

from shared import aws_clients
from shared.customer_store import (
    CUSTOMER_COLUMNS,
    DB_PATH,
    CustomerRecord,
    initialize_database,
    upsert_customers,
)
from shared.schema_validation import DIRECT_EVENT_SCHEMA, S3_EVENT_SCHEMA, matches

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)

# -------- Config (env vars) --------
STATE_MACHINE_ARN = os.environ.get(
    "STATE_MACHINE_ARN",
    "arn:aws:states:us-east-2:000000000000:stateMachine:ETL-Customer-Data-Pipeline",
)
PROCESSED_PREFIX = os.environ.get("PROCESSED_PREFIX", "processed/")
PREVIEW_CHARS = int(os.environ.get("PREVIEW_CHARS", "100"))

FIRST_NAME_HEADER = "First Name"


class IngestionError(Exception):
    """Raised when any step of the ingestion fails.

    The message is a JSON string: {"message": ..., "error": ...}.
    """

    def __init__(self, error: str, message: str = "Error processing file"):
        self.message = message
        self.error = error
        super().__init__(json.dumps({"message": message, "error": error}))


# -------- Helpers --------
def parse_trigger(event: Any) -> Tuple[str, str]:
    """Extract (bucket, key) from an S3 notification or a direct invocation payload."""
    if matches(event, S3_EVENT_SCHEMA):
        rec = event["Records"][0]
        bucket = rec["s3"]["bucket"]["name"]
        # S3 notifications URL-encode the object key
        key = unquote_plus(rec["s3"]["object"]["key"])
        logger.info(f"[parse_trigger] Parsed S3 notification -> s3://{bucket}/{key}")
        return bucket, key

    if matches(event, DIRECT_EVENT_SCHEMA):
        bucket = event["bucketName"]
        key = event["objectKey"]
        logger.info(f"[parse_trigger] Parsed direct invocation -> s3://{bucket}/{key}")
        return bucket, key

    raise ValueError("Unsupported event format")


def _split_line(line: str) -> List[str]:
    """Split one CSV line into fields; quoting never spans lines."""
    line = line.rstrip("\r")
    try:
        return next(csv.reader([line]), [])
    except csv.Error as e:
        logger.warning(f"[_split_line] Unparseable row, splitting on commas: {e}")
        return line.split(",")


def parse_customers(content: str) -> List[CustomerRecord]:
    """Map CSV rows positionally onto customer records.

    The identifier of each record is its 1-based line number after the header.
    Returns an empty list when the header has no "First Name" column.
    """
    lines = content.lstrip("\ufeff").split("\n")
    headers = _split_line(lines[0])
    if FIRST_NAME_HEADER not in headers:
        logger.warning(f"[parse_customers] {FIRST_NAME_HEADER} column not found in the CSV file.")
        return []
    first_name_index = headers.index(FIRST_NAME_HEADER)

    customers: List[CustomerRecord] = []
    for row_number, line in enumerate(lines[1:], start=1):
        columns = _split_line(line)
        if not columns:
            continue
        if first_name_index < len(columns) and columns[first_name_index]:
            logger.info(f"[parse_customers] First Name: {columns[first_name_index]}")

        values = {
            field: (columns[i] if i < len(columns) else None)
            for i, field in enumerate(CUSTOMER_COLUMNS)
        }
        customers.append(CustomerRecord(customer_id=row_number, **values))

    logger.info(f"[parse_customers] Parsed {len(customers)} customer rows")
    return customers


def _read_object(s3_client, bucket: str, key: str) -> str:
    resp = s3_client.get_object(Bucket=bucket, Key=key)
    return resp["Body"].read().decode("utf-8-sig")


def _move_to_processed(s3_client, bucket: str, key: str) -> str:
    processed_key = f"{PROCESSED_PREFIX}{key}"
    logger.info(f"[_move_to_processed] Moving file to: {processed_key}")

    s3_client.copy_object(
        Bucket=bucket,
        CopySource={"Bucket": bucket, "Key": key},
        Key=processed_key,
    )
    logger.info(f"[_move_to_processed] File copied to: {processed_key}")

    try:
        s3_client.delete_object(Bucket=bucket, Key=key)
    except (ClientError, BotoCoreError) as e:
        logger.error(f"[_move_to_processed] Failed to delete {key}; copy retained at {processed_key}: {e}")
        raise
    logger.info(f"[_move_to_processed] Original file deleted: {key}")
    return processed_key


def _start_workflow(sfn_client, state_machine_arn: str, bucket: str, processed_key: str, preview: str) -> str:
    sfn_input = {
        "bucketName": bucket,
        "objectKey": processed_key,
        "filePreview": preview,
    }
    execution_name = f"customers-{uuid.uuid4().hex[:12]}"

    response = sfn_client.start_execution(
        stateMachineArn=state_machine_arn,
        name=execution_name,
        input=json.dumps(sfn_input),
    )
    execution_arn = response["executionArn"]
    logger.info(f"[_start_workflow] Started Step Functions execution: {execution_name}")
    logger.info(f"[_start_workflow] Execution ARN: {execution_arn}")
    return execution_arn


def process_file(
    event: Dict[str, Any],
    s3_client,
    sfn_client,
    db_path: Optional[str] = None,
    state_machine_arn: Optional[str] = None,
) -> Dict[str, Any]:
    """Ingest one uploaded customer CSV.

    Steps: parse trigger, skip already-processed keys, fetch, upsert rows into
    SQLite, move the object under the processed prefix, start the workflow.
    Any failure is logged and re-raised as IngestionError.
    """
    conn = None
    try:
        bucket, key = parse_trigger(event)
        logger.info(f"[process_file] Processing file from bucket: {bucket}, key: {key}")

        if key.startswith(PROCESSED_PREFIX):
            logger.info(f"[process_file] File {key} is already in the {PROCESSED_PREFIX} folder. Skipping.")
            return {
                "statusCode": 200,
                "body": json.dumps({"message": "File already processed. Skipping."}),
            }

        conn = initialize_database(db_path or DB_PATH)

        content = _read_object(s3_client, bucket, key)
        preview = content[:PREVIEW_CHARS]
        logger.info(f"[process_file] First {PREVIEW_CHARS} characters of the file: {preview}")

        customers = parse_customers(content)
        if customers:
            upsert_customers(conn, customers)
            logger.info("[process_file] Customer data processed successfully.")

        processed_key = _move_to_processed(s3_client, bucket, key)

        execution_arn = _start_workflow(
            sfn_client, state_machine_arn or STATE_MACHINE_ARN, bucket, processed_key, preview
        )

        return {
            "statusCode": 200,
            "body": json.dumps({
                "message": f"File processed successfully and stored in the {PROCESSED_PREFIX} folder.",
                "executionArn": execution_arn,
            }),
        }
    except Exception as e:
        logger.exception(f"[process_file] Error processing file: {e}")
        raise IngestionError(str(e)) from e
    finally:
        if conn is not None:
            conn.close()


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda entry point for customer CSV ingestion.

    Input formats:

    # S3 Event Notification:
    {
      "Records": [{
        "s3": {
          "bucket": {"name": "..."},
          "object": {"key": "..."}
        }
      }]
    }

    # Direct invocation (e.g. from Step Functions):
    {
      "bucketName": "my-bucket",
      "objectKey": "incoming/customers.csv"
    }
    """
    logger.info(f"[handler] Received event: {json.dumps(event, default=str)}")

    return process_file(
        event,
        s3_client=aws_clients.s3_client(),
        sfn_client=aws_clients.step_functions_client(),
    )

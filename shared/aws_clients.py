"""boto3 client factories for the ingestion Lambda.

Clients are created by the handler entry point and passed down explicitly, so
the pipeline itself can run against fakes.
"""

import os

import boto3

AWS_REGION = os.environ.get("AWS_REGION", "us-east-1")


def s3_client(region: str = AWS_REGION):
    return boto3.client("s3", region_name=region)


def step_functions_client(region: str = AWS_REGION):
    return boto3.client("stepfunctions", region_name=region)

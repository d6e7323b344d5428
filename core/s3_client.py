# core/s3_client.py

from typing import Any, Tuple

import boto3

from core.config import settings


def get_s3() -> Tuple[Any, str, str]:
    """
    Get S3 client, bucket name, and region.
    Returns: (s3_client, bucket_name, region)
    Raises RuntimeError if the bucket is not configured.
    Explicit keys are optional; boto3 falls back to its default credential chain.
    """
    bucket = settings.AWS_BUCKET_NAME
    region = settings.AWS_REGION

    if not bucket:
        raise RuntimeError("Missing AWS_BUCKET_NAME")

    kwargs = {"region_name": region}
    if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
        kwargs["aws_access_key_id"] = settings.AWS_ACCESS_KEY_ID
        kwargs["aws_secret_access_key"] = settings.AWS_SECRET_ACCESS_KEY

    client = boto3.client("s3", **kwargs)

    return client, bucket, region

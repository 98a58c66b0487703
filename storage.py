import logging
from io import BytesIO
from pathlib import Path
from typing import Optional

import boto3
import pandas as pd
from botocore.exceptions import BotoCoreError, ClientError

import config
from errors import UpstreamError

logger = logging.getLogger(__name__)


def get_s3_client():
    return boto3.client("s3", region_name=config.AWS_REGION)


def _local_path(file_name: str, folder: str, root: Optional[Path]) -> Path:
    return Path(root or config.DATA_DIR) / folder / file_name


def _read_grid(source) -> pd.DataFrame:
    # Raw cell grid: no header inference, every cell kept as text
    try:
        return pd.read_csv(source, header=None, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        return pd.DataFrame()


def save_file(
    file_name: str,
    data: bytes | pd.DataFrame,
    folder: str = "sheets",
    root: Optional[Path] = None,
    bucket: Optional[str] = None,
):
    """
    Saves a file to either local disk or S3.

    DataFrames are written as a headerless CSV grid.
    """
    if isinstance(data, pd.DataFrame):
        csv_buffer = BytesIO()
        data.to_csv(csv_buffer, index=False, header=False)
        body = csv_buffer.getvalue()
    else:
        body = data

    if bucket:
        key = f"{folder}/{file_name}"
        try:
            get_s3_client().put_object(Bucket=bucket, Key=key, Body=body)
        except (BotoCoreError, ClientError) as e:
            logger.error("S3 upload of %s failed: %s", key, e)
            raise UpstreamError("Failed to write to storage") from e
        return

    # Local fallback
    local_path = _local_path(file_name, folder, root)
    try:
        local_path.parent.mkdir(parents=True, exist_ok=True)
        with open(local_path, "wb") as f:
            f.write(body)
    except OSError as e:
        logger.error("Writing %s failed: %s", local_path, e)
        raise UpstreamError("Failed to write to storage") from e


def load_file(
    file_name: str,
    folder: str = "sheets",
    root: Optional[Path] = None,
    bucket: Optional[str] = None,
) -> pd.DataFrame | None:
    """
    Loads a CSV grid from either local disk or S3.  Missing files give None.
    """
    if bucket:
        s3 = get_s3_client()
        key = f"{folder}/{file_name}"
        try:
            obj = s3.get_object(Bucket=bucket, Key=key)
            return _read_grid(BytesIO(obj["Body"].read()))
        except s3.exceptions.NoSuchKey:
            return None
        except (BotoCoreError, ClientError) as e:
            logger.error("S3 download of %s failed: %s", key, e)
            raise UpstreamError("Failed to read from storage") from e

    # Local fallback
    local_path = _local_path(file_name, folder, root)
    if not local_path.exists():
        return None
    try:
        return _read_grid(local_path)
    except OSError as e:
        logger.error("Reading %s failed: %s", local_path, e)
        raise UpstreamError("Failed to read from storage") from e


def list_files(folder: str = "sheets", root: Optional[Path] = None, bucket: Optional[str] = None) -> list[str]:
    """
    Lists files in a folder (Local or S3).
    """
    if bucket:
        s3 = get_s3_client()
        try:
            response = s3.list_objects_v2(Bucket=bucket, Prefix=f"{folder}/")
        except (BotoCoreError, ClientError) as e:
            logger.error("S3 listing of %s failed: %s", folder, e)
            raise UpstreamError("Failed to read from storage") from e
        if "Contents" in response:
            return [obj["Key"].split("/")[-1] for obj in response["Contents"]]
        return []

    local_path = Path(root or config.DATA_DIR) / folder
    if local_path.exists():
        return sorted(f.name for f in local_path.glob("*") if f.is_file())
    return []

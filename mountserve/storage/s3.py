"""S3-compatible object storage backend (AWS S3 / MinIO)."""

from pathlib import PurePosixPath
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from mountserve.exceptions import StorageException
from mountserve.storage.base import BaseStorageBackend, FileMetadata
from mountserve.storage.paths import ResolvedPath, resolve_key
from mountserve.storage.stream import ByteStream, DEFAULT_CHUNK_SIZE
from mountserve.utils.logger import get_logger
from mountserve.utils.validators import validate_s3_bucket

LOG = get_logger(__name__)

NOT_FOUND_CODES = ('404', 'NoSuchKey', 'NotFound', 'NoSuchBucket')


def _is_not_found(exc: ClientError) -> bool:
    response = getattr(exc, 'response', {}) or {}
    status_code = (response.get('ResponseMetadata') or {}).get('HTTPStatusCode')
    error_code = str((response.get('Error') or {}).get('Code') or '')
    return status_code == 404 or error_code in NOT_FOUND_CODES


class S3Storage(BaseStorageBackend):
    """Serves objects from a single bucket, creating it when missing."""

    scheme = 's3'

    def __init__(self, bucket: str, client=None, endpoint_url: Optional[str] = None,
                 region: Optional[str] = None, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if not bucket:
            raise StorageException("S3 bucket name cannot be empty")
        if not validate_s3_bucket(bucket):
            LOG.warning(f"Bucket name '{bucket}' does not follow S3 naming rules")

        self.bucket = bucket
        self.region = region
        self.chunk_size = chunk_size
        self.client = client or self._create_client(endpoint_url, region)
        self._ensure_bucket()

    @staticmethod
    def _create_client(endpoint_url: Optional[str], region: Optional[str]):
        client_kwargs = {
            'service_name': 's3',
            'config': Config(signature_version='s3v4'),
        }
        if endpoint_url:
            client_kwargs['endpoint_url'] = endpoint_url
        if region:
            client_kwargs['region_name'] = region
        return boto3.client(**client_kwargs)

    def _ensure_bucket(self):
        try:
            self.client.head_bucket(Bucket=self.bucket)
            LOG.debug(f"Bucket {self.bucket} exists")
            return
        except ClientError as e:
            if not _is_not_found(e):
                raise StorageException(
                    f"Error while initialising S3 bucket {self.bucket} for storage: {e}"
                ) from e
        except BotoCoreError as e:
            raise StorageException(f"Failed to reach S3 for bucket {self.bucket}: {e}") from e

        LOG.info(f"Bucket {self.bucket} not found, creating it")
        create_kwargs = {'Bucket': self.bucket}
        if self.region and self.region != 'us-east-1':
            create_kwargs['CreateBucketConfiguration'] = {'LocationConstraint': self.region}
        try:
            self.client.create_bucket(**create_kwargs)
        except (ClientError, BotoCoreError) as e:
            raise StorageException(f"Failed to create S3 bucket {self.bucket}: {e}") from e

    def _resolve(self, candidate: str) -> ResolvedPath:
        return resolve_key(candidate)

    def read_stream(self, path: ResolvedPath) -> Optional[ByteStream]:
        key = self._check_resolved(path, PurePosixPath()).key
        if not key:
            return None
        LOG.debug(f"Reading {key} from bucket {self.bucket}")
        try:
            output = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                return None
            raise StorageException(f"Failed to read {key} from bucket {self.bucket}: {e}") from e
        except BotoCoreError as e:
            raise StorageException(f"Failed to read {key} from bucket {self.bucket}: {e}") from e
        return ByteStream(output['Body'], chunk_size=self.chunk_size,
                          size=output.get('ContentLength'), name=f"s3://{self.bucket}/{key}",
                          error_types=(BotoCoreError, ClientError))

    def metadata(self, path: ResolvedPath) -> Optional[FileMetadata]:
        key = self._check_resolved(path, PurePosixPath()).key
        if not key:
            return None
        LOG.debug(f"Reading metadata of {key} in bucket {self.bucket}")
        try:
            data = self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                return None
            raise StorageException(f"Failed to stat {key} in bucket {self.bucket}: {e}") from e
        except BotoCoreError as e:
            raise StorageException(f"Failed to stat {key} in bucket {self.bucket}: {e}") from e
        return FileMetadata(size=int(data.get('ContentLength') or 0))

    def __repr__(self) -> str:
        return f"<S3Storage bucket={self.bucket}>"

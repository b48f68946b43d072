"""Loading of extension bundles from a local directory or S3."""
import json
import logging
import os
import re
from typing import Optional

import boto3
from botocore.exceptions import ClientError

from processor.config_parser import parse_extensions
from processor.errors import ConfigurationError
from processor.models import ExtensionConfig

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r'[\w-]+')


class ExtensionStore:
    """Looks up the extension bundle '<name>.json' for a formatter."""

    def __init__(
        self,
        directory: Optional[str] = None,
        bucket: Optional[str] = None,
        prefix: str = '',
    ):
        """
        Initialize the extension store.

        The local directory is searched first, then the S3 bucket.

        Args:
            directory: Local directory holding extension files
            bucket: S3 bucket holding extension files
            prefix: Key prefix within the bucket
        """
        self.directory = directory
        self.bucket = bucket
        self.prefix = prefix
        self.s3 = boto3.client('s3') if bucket else None

    def load(self, name: str) -> Optional[ExtensionConfig]:
        """
        Load the extension bundle for a formatter.

        Args:
            name: Formatter name

        Returns:
            ExtensionConfig, or None if there is no bundle for this name

        Raises:
            ConfigurationError: If the bundle cannot be read or is malformed
        """
        if not NAME_PATTERN.fullmatch(name):
            raise ConfigurationError(f"Invalid extension name: {name}")

        raw = self._read_local(name)
        if raw is None:
            raw = self._read_s3(name)
        if raw is None:
            return None

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Extension '{name}' is not valid JSON: {e}") from e

        extensions = parse_extensions(data)
        logger.info(
            f"Loaded extension '{name}' with {len(extensions.custom_events)} custom events"
        )
        return extensions

    def _read_local(self, name: str) -> Optional[str]:
        if not self.directory:
            return None

        path = os.path.join(self.directory, f"{name}.json")
        if not os.path.isfile(path):
            return None

        try:
            with open(path, 'r', encoding='utf-8') as f:
                return f.read()
        except OSError as e:
            raise ConfigurationError(f"Failed to read extension '{path}': {e}") from e

    def _read_s3(self, name: str) -> Optional[str]:
        if not self.s3:
            return None

        key = f"{self.prefix}{name}.json"
        try:
            response = self.s3.get_object(Bucket=self.bucket, Key=key)
            return response['Body'].read().decode('utf-8')
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in ('NoSuchKey', '404'):
                logger.debug(f"No extension at s3://{self.bucket}/{key}")
                return None
            logger.error(f"Error reading extension from S3: {e}")
            raise ConfigurationError(
                f"Failed to read extension 's3://{self.bucket}/{key}': {e}"
            ) from e

"""S3 state backend.

The state document and its lease live side by side in a shared bucket::

    s3://<bucket>/<prefix><project>/<stage>/<region>.json
    s3://<bucket>/<prefix><project>/<stage>/<region>.lock

The lease is created with ``If-None-Match: *`` so exactly one run can hold
it; state writes carry ``If-Match: <etag>`` (the version token) so a writer
that lost its lease cannot silently overwrite a newer document.
Releasing deletes the lease only under ``If-Match`` on the ETag the run was
given, so a run whose lease was broken never removes its successor's.
"""

from __future__ import annotations

import json
import logging
import os
import socket
from datetime import UTC, datetime
from typing import Any

import boto3
from botocore.exceptions import ClientError

from stackwright.core.store import StateStore
from stackwright.engine.errors import ConcurrentDeploymentError

logger = logging.getLogger(__name__)

_MISSING_CODES = frozenset({"NoSuchKey", "404", "NotFound"})
_CONFLICT_CODES = frozenset({"PreconditionFailed", "412", "ConditionalRequestConflict", "409"})


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


class S3StateStore(StateStore):
    """State documents in an S3 bucket shared by every operator."""

    def __init__(
        self,
        bucket: str,
        *,
        prefix: str = "",
        region: str | None = None,
        client: Any | None = None,
    ) -> None:
        super().__init__()
        self.bucket = bucket
        self.prefix = prefix if not prefix or prefix.endswith("/") else f"{prefix}/"
        self._client = client or boto3.client("s3", region_name=region)
        self._etags: dict[str, str] = {}
        self._lease_etags: dict[str, str] = {}

    def object_key(self, key: str) -> str:
        return f"{self.prefix}{key}.json"

    def lease_key(self, key: str) -> str:
        return f"{self.prefix}{key}.lock"

    def _read(self, key: str) -> str | None:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=self.object_key(key))
        except ClientError as exc:
            if _error_code(exc) in _MISSING_CODES:
                self._etags.pop(key, None)
                return None
            raise
        self._etags[key] = response["ETag"]
        return response["Body"].read().decode("utf-8")

    def _write(self, key: str, payload: str) -> None:
        conditions: dict[str, str] = {}
        etag = self._etags.get(key)
        if etag is not None:
            conditions["IfMatch"] = etag
        else:
            conditions["IfNoneMatch"] = "*"
        try:
            response = self._client.put_object(
                Bucket=self.bucket,
                Key=self.object_key(key),
                Body=payload.encode("utf-8"),
                ContentType="application/json",
                **conditions,
            )
        except ClientError as exc:
            if _error_code(exc) in _CONFLICT_CODES:
                raise ConcurrentDeploymentError(key, "a concurrent state writer") from exc
            raise
        self._etags[key] = response["ETag"]

    def _acquire(self, key: str, run_id: str) -> None:
        body = json.dumps(
            {
                "run_id": run_id,
                "host": socket.gethostname(),
                "pid": os.getpid(),
                "acquired_at": datetime.now(UTC).isoformat(),
            },
            sort_keys=True,
        )
        try:
            response = self._client.put_object(
                Bucket=self.bucket,
                Key=self.lease_key(key),
                Body=body.encode("utf-8"),
                ContentType="application/json",
                IfNoneMatch="*",
            )
        except ClientError as exc:
            if _error_code(exc) in _CONFLICT_CODES:
                raise ConcurrentDeploymentError(key, self._lease_holder(key)) from exc
            raise
        self._lease_etags[key] = response["ETag"]

    def _lease_holder(self, key: str) -> str | None:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=self.lease_key(key))
            info = json.loads(response["Body"].read())
        except (ClientError, ValueError) as exc:
            logger.debug("Could not read lease holder for %s: %s", key, exc)
            return None
        return f"run {info.get('run_id')} on {info.get('host')} since {info.get('acquired_at')}"

    def _release(self, key: str, run_id: str) -> None:
        etag = self._lease_etags.pop(key, None)
        if etag is None:
            return
        try:
            self._client.delete_object(Bucket=self.bucket, Key=self.lease_key(key), IfMatch=etag)
        except ClientError as exc:
            if _error_code(exc) not in _CONFLICT_CODES | _MISSING_CODES:
                raise
            logger.warning(
                "Lease for %s was broken while run %s held it; leaving the current lease alone",
                key,
                run_id,
            )

    def _break_lease(self, key: str) -> None:
        self._client.delete_object(Bucket=self.bucket, Key=self.lease_key(key))

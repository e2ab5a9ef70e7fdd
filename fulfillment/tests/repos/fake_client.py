"""
In-memory stand-in for ``minio.Minio`` used by the Minio repository tests.

Only the calls listed in the MinioClient protocol are implemented. Missing
objects and buckets raise an S3Error subclass carrying the same error codes
the real client reports.
"""

from types import SimpleNamespace
from typing import Any, Dict, Iterator, List, Optional

from minio.error import S3Error


class FakeS3Error(S3Error):
    def __init__(self, code: str, message: str) -> None:
        # S3Error's constructor wants a live HTTP response.
        Exception.__init__(self, message)
        self._fake_code = code
        self._fake_message = message

    @property
    def code(self) -> str:  # type: ignore[override]
        return self._fake_code

    def __str__(self) -> str:
        return f"S3 operation failed; code: {self._fake_code}"


class FakeResponse:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.closed = False
        self.released = False

    def read(self) -> bytes:
        return self.data

    def close(self) -> None:
        self.closed = True

    def release_conn(self) -> None:
        self.released = True


class FakeMinioClient:
    def __init__(self) -> None:
        self.buckets: Dict[str, Dict[str, bytes]] = {}
        self.responses: List[FakeResponse] = []
        self.fail_reads_with: Optional[str] = None

    def _bucket(self, bucket_name: str) -> Dict[str, bytes]:
        if bucket_name not in self.buckets:
            raise FakeS3Error("NoSuchBucket", f"{bucket_name} does not exist")
        return self.buckets[bucket_name]

    def bucket_exists(self, bucket_name: str) -> bool:
        return bucket_name in self.buckets

    def make_bucket(self, bucket_name: str) -> None:
        self.buckets.setdefault(bucket_name, {})

    def put_object(
        self,
        bucket_name: str,
        object_name: str,
        data: Any,
        length: int,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any:
        self._bucket(bucket_name)[object_name] = data.read(length)
        return SimpleNamespace(bucket_name=bucket_name, object_name=object_name)

    def get_object(self, bucket_name: str, object_name: str) -> FakeResponse:
        if self.fail_reads_with is not None:
            raise FakeS3Error(self.fail_reads_with, "read rejected")
        objects = self._bucket(bucket_name)
        if object_name not in objects:
            raise FakeS3Error("NoSuchKey", f"{object_name} does not exist")
        response = FakeResponse(objects[object_name])
        self.responses.append(response)
        return response

    def list_objects(
        self,
        bucket_name: str,
        prefix: Optional[str] = None,
        recursive: bool = False,
    ) -> Iterator[Any]:
        for name in sorted(self._bucket(bucket_name)):
            if prefix is None or name.startswith(prefix):
                yield SimpleNamespace(object_name=name)

    def remove_object(self, bucket_name: str, object_name: str) -> None:
        self._bucket(bucket_name).pop(object_name, None)

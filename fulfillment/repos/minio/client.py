"""
MinioClient protocol definition.

The protocol captures only the Minio client methods the run repository
uses, so both the real ``minio.Minio`` client and the fake client used in
tests satisfy it.
"""

from typing import Any, Dict, Iterator, Optional, Protocol, runtime_checkable


@runtime_checkable
class MinioClient(Protocol):
    def bucket_exists(self, bucket_name: str) -> bool:
        ...

    def make_bucket(self, bucket_name: str) -> None:
        ...

    def put_object(
        self,
        bucket_name: str,
        object_name: str,
        data: Any,
        length: int,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any:
        ...

    def get_object(self, bucket_name: str, object_name: str) -> Any:
        """Returns a response with read(), close() and release_conn().

        Raises:
            S3Error: NoSuchKey when the object does not exist
        """
        ...

    def list_objects(
        self,
        bucket_name: str,
        prefix: Optional[str] = None,
        recursive: bool = False,
    ) -> Iterator[Any]:
        ...

    def remove_object(self, bucket_name: str, object_name: str) -> None:
        ...

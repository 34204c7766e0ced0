from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from google.cloud import storage


@dataclass
class GcsClient:
    """
    Simple GCS wrapper for composite uploads and AOI asset listing.

    Example:
        gcs = GcsClient(bucket="ndvi-composites",
                        credentials="~/.gcp/ndvi-service-key.json")
        gcs.upload("outputs/GEE/Zambia/10m_resolution/2020-02_NDVI_Zambia.tif",
                   "GEE/Zambia/10m_resolution/2020-02_NDVI_Zambia.tif")
    """

    bucket: str
    credentials: Optional[str] = None

    def __post_init__(self):
        if self.credentials:
            self._client = storage.Client.from_service_account_json(
                str(Path(self.credentials).expanduser())
            )
        else:
            # Use default credentials (e.g. on GCP VM)
            self._client = storage.Client()

        self._bucket = self._client.bucket(self.bucket)

    @staticmethod
    def split_uri(uri: str) -> tuple[str, str]:
        """'gs://bucket/some/prefix' -> ('bucket', 'some/prefix')"""
        if not uri.startswith("gs://"):
            raise ValueError(f"Not a gs:// URI: {uri}")
        bucket, _, path = uri[len("gs://"):].partition("/")
        return bucket, path

    # ------------------------
    # Uploads
    # ------------------------
    def upload(self, local_path: str | Path, remote_path: str) -> str:
        local_path = Path(local_path)
        blob = self._bucket.blob(remote_path)
        blob.upload_from_filename(str(local_path))
        return f"gs://{self.bucket}/{remote_path}"

    # ------------------------
    # Downloads
    # ------------------------
    def download(self, remote_path: str, local_path: str | Path) -> Path:
        local_path = Path(local_path)
        local_path.parent.mkdir(parents=True, exist_ok=True)

        blob = self._bucket.blob(remote_path)
        if not blob.exists():
            raise FileNotFoundError(f"No such GCS object: gs://{self.bucket}/{remote_path}")

        blob.download_to_filename(str(local_path))
        return local_path

    # ------------------------
    # Exists / list
    # ------------------------
    def exists(self, remote_path: str) -> bool:
        return self._bucket.blob(remote_path).exists()

    def list(self, prefix: str = "") -> List[str]:
        blobs = self._client.list_blobs(self.bucket, prefix=prefix)
        return [b.name for b in blobs]

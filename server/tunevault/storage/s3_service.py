"""S3 storage service for track audio and artwork"""
import os
import time
import uuid
import boto3
from botocore.exceptions import ClientError
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

# Processing directives handed to the provider with each upload
MEDIA_PROFILES = {
    "audio": {
        "folder": "tracks",
        "prefix": "track",
        "format": "mp3",
        "content_type": "audio/mpeg",
        "directives": {"audio-codec": "mp3", "audio-frequency": "44100", "quality": "auto"},
    },
    "image": {
        "folder": "images",
        "prefix": "image",
        "format": "jpg",
        "content_type": "image/jpeg",
        "directives": {"max-width": "1000", "max-height": "1000", "crop": "limit", "quality": "auto"},
    },
}


class MediaDeleteError(Exception):
    """The provider did not confirm the purge of an object"""


class S3Service:
    def __init__(self):
        self.endpoint_url = os.getenv("S3_ENDPOINT_URL")
        self.region = os.getenv("S3_REGION")
        self.access_key = os.getenv("S3_ACCESS_KEY")
        self.secret_key = os.getenv("S3_SECRET_KEY")
        self.bucket_name = os.getenv("S3_BUCKET_NAME")
        self.folder = os.getenv("S3_FOLDER", "musicplayer").strip("/")

        # Validate configuration
        if not all([self.endpoint_url, self.access_key, self.secret_key, self.bucket_name]):
            raise ValueError("Missing S3 configuration. Please set S3_ENDPOINT_URL, S3_ACCESS_KEY, S3_SECRET_KEY, and S3_BUCKET_NAME")

        self.client = boto3.client(
            's3',
            endpoint_url=self.endpoint_url,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
            region_name=self.region
        )

        logger.info(f"✅ S3 Service initialized with bucket: {self.bucket_name}")
        logger.info(f"   Endpoint: {self.endpoint_url}")

    def build_key(self, kind: str) -> str:
        profile = MEDIA_PROFILES[kind]
        stamp = int(time.time() * 1000)
        return f"{self.folder}/{profile['folder']}/{profile['prefix']}_{stamp}_{uuid.uuid4().hex[:8]}.{profile['format']}"

    def upload_media(self, file_data: bytes, kind: str, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Upload audio or image bytes with their processing directives

        Returns the public URL, the object key (public_id) and what the
        provider reports about the stored object.
        """
        profile = MEDIA_PROFILES[kind]
        file_key = self.build_key(kind)

        object_metadata = dict(profile["directives"])
        for name, value in (metadata or {}).items():
            if value is not None:
                object_metadata[name] = str(value)

        logger.info(f"📤 Uploading {kind}: {file_key} ({len(file_data)} bytes)")
        self.client.put_object(
            Bucket=self.bucket_name,
            Key=file_key,
            Body=file_data,
            ContentType=profile["content_type"],
            Metadata=object_metadata,
            ACL='public-read'
        )

        head = self.client.head_object(Bucket=self.bucket_name, Key=file_key)
        public_url = self.get_file_url(file_key)
        logger.info(f"✅ Upload successful! Public URL: {public_url}")

        result = {
            "url": public_url,
            "public_id": file_key,
            "format": profile["format"],
            "bytes": head.get("ContentLength", len(file_data)),
        }
        stored = head.get("Metadata", {})
        if kind == "audio":
            result["duration"] = _as_number(stored.get("duration"))
        else:
            result["width"] = _as_number(stored.get("width"))
            result["height"] = _as_number(stored.get("height"))
        return result

    def file_exists(self, file_key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket_name, Key=file_key)
            return True
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in ('404', 'NoSuchKey', 'NotFound'):
                return False
            raise

    def delete_media(self, file_key: str) -> None:
        """Purge a previously uploaded object, raising MediaDeleteError unless it is gone"""
        if not self.file_exists(file_key):
            raise MediaDeleteError(f"Object not found: {file_key}")

        try:
            self.client.delete_object(
                Bucket=self.bucket_name,
                Key=file_key
            )
        except ClientError as e:
            logger.error(f"❌ Failed to delete file from S3: {e}")
            logger.error(f"   Error Code: {e.response.get('Error', {}).get('Code', 'Unknown')}")
            raise MediaDeleteError(str(e)) from e

        logger.info(f"✅ Deleted file from S3: {file_key}")

    def get_file_url(self, file_key: str) -> str:
        """Get public URL for a file"""
        # https://BUCKET.ENDPOINT_HOST/FILE_KEY
        host = self.endpoint_url.replace('https://', '').replace('http://', '')
        return f"https://{self.bucket_name}.{host}/{file_key}"


def _as_number(value: Optional[str]):
    if value is None:
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return int(number) if number.is_integer() else number


# Global instance
_s3_service: Optional[S3Service] = None

def get_s3_service() -> S3Service:
    """Get or create S3 service instance"""
    global _s3_service
    if _s3_service is None:
        _s3_service = S3Service()
    return _s3_service

"""
Local object storage for Plastic Clever Schools Evidence Review

Stores evidence files below ``UPLOAD_DIR/<visibility>/<owner_id>/`` and
hands back stable ``/uploads/...`` URLs served by the files blueprint.
"""

import os
from flask import current_app

from models.constants import Visibility
from services.delegates import FileStore
from services.file_processing import compress_image
from utils.file_handler import build_storage_name, resolve_inside

URL_PREFIX = "/uploads/"


class LocalFileStore(FileStore):
    def __init__(self, upload_dir: str):
        self.upload_dir = upload_dir

    def upload_file(self, data: bytes, mime_type: str, filename: str, owner_id, visibility: str) -> str:
        if visibility not in Visibility.ALL:
            raise ValueError(f"Unknown visibility: {visibility}")

        # Name derives from the original bytes so retries land on the same URL
        name = build_storage_name(data, filename)
        relative = os.path.join(visibility, str(owner_id), name)
        path = resolve_inside(self.upload_dir, relative)
        if path is None:
            raise ValueError("Invalid storage path")

        if not os.path.exists(path):
            os.makedirs(os.path.dirname(path), exist_ok=True)
            payload = compress_image(data, mime_type)
            tmp_path = f"{path}.part"
            with open(tmp_path, "wb") as f:
                f.write(payload)
            os.replace(tmp_path, path)
            current_app.logger.info(f"Stored upload {relative} ({len(payload)} bytes)")

        return URL_PREFIX + relative.replace(os.sep, "/")

    def path_for_url(self, url: str):
        if not url or not url.startswith(URL_PREFIX):
            return None
        return resolve_inside(self.upload_dir, url[len(URL_PREFIX):])

    def delete_file(self, url: str) -> bool:
        try:
            path = self.path_for_url(url)
            if path is None:
                current_app.logger.warning(f"Refusing to delete file outside upload storage: {url}")
                return False
            if os.path.exists(path):
                os.remove(path)
                current_app.logger.info(f"Deleted stored file {url}")
                return True
            return False
        except OSError as e:
            current_app.logger.warning(f"Failed to delete stored file {url}: {e}")
            return False

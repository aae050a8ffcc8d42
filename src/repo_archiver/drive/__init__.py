from .oauth import DRIVE_FILE_SCOPE, load_drive_credentials
from .upload import DriveUploader

__all__ = [
    "DRIVE_FILE_SCOPE",
    "DriveUploader",
    "load_drive_credentials",
]

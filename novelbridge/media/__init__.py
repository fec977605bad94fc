from novelbridge.media.uploader import (
    BaseMediaUploader, LocalMediaUploader, MediaUploadError, UploadedMedia, identify_image,
)

__all__ = ["BaseMediaUploader", "LocalMediaUploader", "MediaUploadError", "UploadedMedia", "identify_image"]

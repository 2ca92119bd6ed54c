import os
import logging
import cloudinary
import cloudinary.uploader
from fastapi import HTTPException, status

logger = logging.getLogger(__name__)

# Media host for category and product images. Credentials come from the
# environment only.
_REQUIRED = ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET")

_missing = [name for name in _REQUIRED if not os.getenv(name)]
if _missing:
    raise RuntimeError(f"Cloudinary is not configured; missing {', '.join(_missing)}")

cloudinary.config(
    cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME"),
    api_key=os.getenv("CLOUDINARY_API_KEY"),
    api_secret=os.getenv("CLOUDINARY_API_SECRET"),
    secure=True,
)


def upload_image(
    file,
    folder: str,
    public_id: str | None = None,
    allowed_formats: list[str] | None = None,
) -> str:
    """
    Push one image to the media host and return its secure URL.

    ``file`` is either an open file object (multipart uploads) or a
    ``data:image/...;base64,`` string (inline images on product payloads).
    """
    try:
        result = cloudinary.uploader.upload(
            file,
            folder=folder,
            public_id=public_id,
            resource_type="image",
            allowed_formats=allowed_formats,
            overwrite=False,
        )
    except Exception as e:
        logger.error("Image upload failed | folder=%s | public_id=%s | error=%s", folder, public_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to upload image to cloud storage.",
        )

    logger.info("Image uploaded | folder=%s | public_id=%s", folder, result.get("public_id"))
    return result["secure_url"]

import uuid
from fastapi import UploadFile, HTTPException, status

from storefront.cloudinary_client import upload_image

# ======================================================
# UPLOAD RULES
# ======================================================

IMAGE_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/gif",
}

IMAGE_FORMATS = ["jpg", "jpeg", "png", "webp", "gif"]

MAX_FILE_SIZE = 15 * 1024 * 1024  # 15MB

ALLOWED_FOLDERS = {
    "categories",
    "products",
}


def _check_folder(folder: str):
    if folder not in ALLOWED_FOLDERS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid upload destination: '{folder}'",
        )


def is_data_uri(value) -> bool:
    return isinstance(value, str) and value.startswith("data:image/")


# ======================================================
# MULTIPART UPLOADS
# ======================================================

def handle_upload(
    file: UploadFile,
    folder: str,
    owner_id: str,
) -> str:
    """
    Validate a multipart image and push it to the media host.
    Returns the secure URL to store on the row.
    """

    _check_folder(folder)

    if not file:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file uploaded",
        )

    content_type = (file.content_type or "").lower().strip()

    if content_type not in IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type: '{content_type}'. Allowed: JPEG, PNG, WebP, GIF.",
        )

    # Stream-safe size check
    try:
        file.file.seek(0, 2)
        size = file.file.tell()
        file.file.seek(0)
    except OSError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to read uploaded file",
        )

    if size == 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty",
        )

    if size > MAX_FILE_SIZE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File size {round(size / 1024 / 1024, 1)}MB exceeds 15MB limit",
        )

    # Unique public_id per upload
    public_id = f"{folder}_{owner_id}_{uuid.uuid4().hex}"

    return upload_image(
        file=file.file,
        folder=folder,
        public_id=public_id,
        allowed_formats=IMAGE_FORMATS,
    )


# ======================================================
# INLINE (BASE64) UPLOADS
# ======================================================

def upload_data_uri(data_uri: str, folder: str, owner_id: str) -> str:
    _check_folder(folder)
    return upload_image(
        file=data_uri,
        folder=folder,
        public_id=f"{folder}_{owner_id}_{uuid.uuid4().hex}",
        allowed_formats=IMAGE_FORMATS,
    )

import logging

from flask import Blueprint, request, jsonify

from utils import verify_jwt, app_settings, app_services

images_bp = Blueprint('images', __name__)

logger = logging.getLogger("course_api.images")


## Functionality: Upload a course image
## Endpoint: POST /upload-image
## Protection: Unprotected unless UPLOAD_REQUIRES_AUTH is set
## Description: Stores the multipart "image" part in the bucket and
## returns its public URL.
@images_bp.route('/upload-image', methods=['POST'])
def upload_image():
    settings = app_settings()
    if settings.upload_requires_auth:
        verify_jwt(request, settings)

    image = request.files.get('image')
    if image is None:
        logger.error("Upload request without an image part")
        return jsonify({"error": "Image upload failed"}), 500

    try:
        url = app_services().images.upload(image.stream, image.filename, image.mimetype)
    except Exception:
        logger.exception("Image upload error")
        return jsonify({"error": "Image upload failed"}), 500

    return jsonify({"imageUrl": url}), 200

import logging

from flask import Blueprint, request, jsonify

from clients import COURSE_FIELDS
from utils import (verify_jwt, require_fields, app_settings, app_services,
                   ConflictError, NotFoundError, ValidationError)

courses_bp = Blueprint('courses', __name__)

logger = logging.getLogger("course_api.courses")


## Functionality: Get all courses
## Endpoint: GET /courses
## Protection: Unprotected
## Description: Every course, in the order the store returns them.
@courses_bp.route('/courses', methods=['GET'])
def get_all_courses():
    try:
        courses = app_services().courses.list()
    except Exception:
        logger.exception("Failed to list courses")
        return "Server error", 500
    return jsonify(courses), 200


## Functionality: Create a course
## Endpoint: POST /courses
## Protection: Bearer token
## Description: All five fields are required; the code must be unique.
@courses_bp.route('/courses', methods=['POST'])
def create_course():
    verify_jwt(request, app_settings())

    try:
        data = require_fields(request.get_json(silent=True), COURSE_FIELDS)
    except ValidationError:
        return jsonify({"error": "All fields must be provided"}), 400

    try:
        course = app_services().courses.create(data)
    except ConflictError:
        return jsonify({"error": "Course with this code already exists"}), 400
    except Exception:
        logger.exception("Failed to add course")
        return jsonify({"error": "Failed to add course"}), 500

    return jsonify(course), 201


## Functionality: Update a course
## Endpoint: PUT /courses/:id
## Protection: Bearer token
## Description: Full replace of the five course fields.
@courses_bp.route('/courses/<int:course_id>', methods=['PUT'])
def update_course(course_id):
    verify_jwt(request, app_settings())

    try:
        data = require_fields(request.get_json(silent=True), COURSE_FIELDS)
    except ValidationError:
        return jsonify({"error": "All fields must be provided"}), 400

    try:
        course = app_services().courses.update(course_id, data)
    except NotFoundError:
        return jsonify({"error": "Course not found"}), 404
    except ConflictError:
        return jsonify({"error": "Course with this code already exists"}), 400
    except Exception:
        logger.exception("Failed to update course %s", course_id)
        return jsonify({"error": "Failed to update course"}), 500

    return jsonify(course), 200


## Functionality: Delete a course
## Endpoint: DELETE /courses/:id
## Protection: Bearer token
## Description: Removes the course and frees its code. Plain text replies.
@courses_bp.route('/courses/<int:course_id>', methods=['DELETE'])
def delete_course(course_id):
    verify_jwt(request, app_settings())

    logger.info("Deleting course with ID: %s", course_id)
    try:
        app_services().courses.delete(course_id)
    except NotFoundError:
        return "Course not found", 404
    except Exception:
        logger.exception("Failed to delete course %s", course_id)
        return "Server error", 500

    return "Course deleted successfully", 200

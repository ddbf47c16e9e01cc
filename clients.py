# clients.py
# Thin wrappers over the hosted services. Each one raises the error types
# from utils.py instead of handing provider responses to the handlers.
import logging
import mimetypes
import os
import uuid
from collections import namedtuple

import requests
from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import datastore, storage

from utils import ConflictError, InvalidCredentials, NotFoundError, ServiceError

logger = logging.getLogger("course_api.clients")

COURSE_KIND = 'courses'
CODE_KIND = 'course_codes'
COURSE_FIELDS = ('name', 'code', 'description', 'credit', 'image')

# Auth0 error codes
SIGNUP_CONFLICT_CODES = {'user_exists', 'invalid_signup'}
LOGIN_INVALID_CODES = {'invalid_grant', 'invalid_user_password'}

Services = namedtuple('Services', ['courses', 'identity', 'images'])

# Failures the Google SDKs raise: API errors, expired credentials, transport
UPSTREAM_ERRORS = (GoogleAPIError, GoogleAuthError, requests.RequestException)


class CourseStore:
    """Course records in Cloud Datastore.

    Code uniqueness is kept with one marker entity per code, written in
    the same transaction as the course that owns it.
    """

    def __init__(self, client):
        self.client = client

    @classmethod
    def from_settings(cls, settings):
        return cls(datastore.Client(project=settings.project))

    def list(self):
        try:
            query = self.client.query(kind=COURSE_KIND)
            return [self._to_course(entity) for entity in query.fetch()]
        except UPSTREAM_ERRORS as e:
            raise ServiceError("Failed to list courses") from e

    def create(self, fields):
        client = self.client
        code = str(fields['code'])
        try:
            key = client.allocate_ids(client.key(COURSE_KIND), 1)[0]
            with client.transaction():
                code_key = client.key(CODE_KIND, code)
                if client.get(code_key) is not None:
                    raise ConflictError(code)

                course = datastore.Entity(key=key)
                course.update({f: fields[f] for f in COURSE_FIELDS})
                course['code'] = code
                marker = datastore.Entity(key=code_key)
                marker['course_id'] = key.id
                client.put_multi([course, marker])
        except UPSTREAM_ERRORS as e:
            raise ServiceError("Failed to create course") from e
        return self._to_course(course)

    def update(self, course_id, fields):
        client = self.client
        new_code = str(fields['code'])
        try:
            with client.transaction():
                course = client.get(client.key(COURSE_KIND, course_id))
                if course is None:
                    raise NotFoundError(course_id)

                entities = []
                old_code = str(course.get('code'))
                if new_code != old_code:
                    code_key = client.key(CODE_KIND, new_code)
                    holder = client.get(code_key)
                    if holder is not None and holder.get('course_id') != course_id:
                        raise ConflictError(new_code)
                    marker = datastore.Entity(key=code_key)
                    marker['course_id'] = course_id
                    entities.append(marker)
                    client.delete(client.key(CODE_KIND, old_code))

                course.update({f: fields[f] for f in COURSE_FIELDS})
                course['code'] = new_code
                entities.append(course)
                client.put_multi(entities)
        except UPSTREAM_ERRORS as e:
            raise ServiceError("Failed to update course") from e
        return self._to_course(course)

    def delete(self, course_id):
        client = self.client
        try:
            with client.transaction():
                key = client.key(COURSE_KIND, course_id)
                course = client.get(key)
                if course is None:
                    raise NotFoundError(course_id)
                client.delete_multi([key, client.key(CODE_KIND, str(course.get('code')))])
        except UPSTREAM_ERRORS as e:
            raise ServiceError("Failed to delete course") from e

    @staticmethod
    def _to_course(entity):
        course = {"id": entity.key.id}
        course.update({f: entity.get(f) for f in COURSE_FIELDS})
        return course


class IdentityProvider:
    """Auth0 database connection: signup and resource-owner password grant."""

    def __init__(self, domain, client_id, client_secret=None,
                 connection='Username-Password-Authentication', timeout=10.0):
        self.domain = domain
        self.client_id = client_id
        self.client_secret = client_secret
        self.connection = connection
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings):
        return cls(settings.auth0_domain, settings.auth0_client_id,
                   settings.auth0_client_secret, settings.auth0_connection,
                   settings.idp_timeout)

    def register(self, username, password):
        payload = {
            "client_id": self.client_id,
            "email": username,
            "password": password,
            "connection": self.connection,
        }
        resp = self._post('/dbconnections/signup', payload)
        if resp.status_code in (200, 201):
            return resp.json()

        code = _error_code(resp)
        if code in SIGNUP_CONFLICT_CODES:
            raise ConflictError(username)
        raise ServiceError(f"Signup failed with status {resp.status_code} ({code})")

    def login(self, username, password):
        payload = {
            "grant_type": "password",
            "username": username,
            "password": password,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "scope": "openid profile email"
        }
        resp = self._post('/oauth/token', payload)
        if resp.status_code == 200:
            body = resp.json()
            token = body.get('id_token') or body.get('access_token')
            if not token:
                raise ServiceError("Token response did not contain a token")
            return token

        code = _error_code(resp)
        if code in LOGIN_INVALID_CODES:
            raise InvalidCredentials()
        raise ServiceError(f"Login failed with status {resp.status_code} ({code})")

    def _post(self, path, payload):
        if not self.domain or not self.client_id:
            raise ServiceError("Identity provider is not configured")

        headers = {'content-type': 'application/json'}
        url = f'https://{self.domain}{path}'
        try:
            return requests.post(url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise ServiceError(f"Request to {url} failed") from e


def _error_code(resp):
    try:
        body = resp.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    return body.get('code') or body.get('error')


class ImageHost:
    """Public image objects in a Cloud Storage bucket."""

    def __init__(self, bucket, folder='courses'):
        self.bucket = bucket
        self.folder = folder

    @classmethod
    def from_settings(cls, settings):
        bucket = None
        if settings.bucket_name:
            bucket = storage.Client(project=settings.project).bucket(settings.bucket_name)
        return cls(bucket, settings.upload_folder)

    def upload(self, stream, filename=None, content_type=None):
        if self.bucket is None:
            raise ServiceError("Upload bucket is not configured")

        ext = os.path.splitext(filename or '')[1].lower()
        if not ext and content_type:
            ext = mimetypes.guess_extension(content_type) or ''

        blob = self.bucket.blob(f'{self.folder}/{uuid.uuid4().hex}{ext}')
        try:
            blob.upload_from_file(stream, content_type=content_type or 'application/octet-stream')
        except UPSTREAM_ERRORS as e:
            raise ServiceError("Failed to upload image") from e

        logger.info("Uploaded image %s", blob.name)
        return blob.public_url


def build_services(settings):
    return Services(
        courses=CourseStore.from_settings(settings),
        identity=IdentityProvider.from_settings(settings),
        images=ImageHost.from_settings(settings),
    )

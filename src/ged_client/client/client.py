"""
GED API client implementation.
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import GedConfig
from ..schemas import DownloadedFile, Envelope, Profile, ProfileMember
from .decoding import decode_json_body, parse_content_disposition
from .query import append_token, build_metadata_query, format_search_date
from .results import GedResult

NOTICE = 25
logging.addLevelName(NOTICE, "NOTICE")

DEFAULT_IDENTITY = "testinfo"

DOCUMENT_STATUS_DRAFT = "draft"
DOCUMENT_STATUS_ACTIVE = "active"
DOCUMENT_STATUS_INACTIVE = "inactive"

JSON_MIME_TYPE = "application/json"
FILE_CONTENT_PLACEHOLDER = "[FILE CONTENT]"


class GedError(Exception):
    """Base exception for GED client errors."""
    pass


class GedConnectionError(GedError):
    """Failed to reach the GED service."""
    pass


class GedAuthenticationError(GedError):
    """The GED handshake was rejected or returned no token."""
    pass


class GedNotFoundError(GedError):
    """A resource the caller relies on does not exist on the GED service."""
    pass


class GedMissingFilenameError(GedError):
    """A document upload has neither a custom filename nor a file path."""
    pass


def _merge_options(defaults: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict:
    """Recursively merge request options; values from ``overrides`` win."""
    merged = dict(defaults)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _merge_options(merged[key], value)
        else:
            merged[key] = value
    return merged


def _loggable_options(options: Mapping[str, Any]) -> dict:
    """Request options safe to log: no API key, no file bytes."""
    loggable = {}
    for key, value in options.items():
        if key == "headers":
            loggable[key] = {
                h: ("***" if h.lower() == "x-apikey" else v) for h, v in value.items()
            }
        elif key == "files":
            parts = value.items() if isinstance(value, Mapping) else value
            loggable[key] = [name for name, _ in parts]
        elif isinstance(value, bytes):
            loggable[key] = f"<{len(value)} bytes>"
        else:
            loggable[key] = value
    return loggable


def _existing_file(value: Any) -> Optional[Path]:
    """Return the path if ``value`` names an existing local file."""
    if isinstance(value, (bytes, bytearray)):
        return None
    if os.path.isfile(value):
        return Path(value)
    return None


def _is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


class GedClient:
    """
    Client for the GED document-management API.

    Every call goes through one pipeline that appends the session token to
    the resource URI. The token is fetched lazily with the API key on first
    use and kept for the lifetime of the instance (no refresh).

    Failures come in two flavours:
    - soft: non-2xx answers and transport errors are logged and surfaced as
      ``None`` (or a non-OK ``GedResult``)
    - hard: broken preconditions raise a ``GedError`` subclass
    """

    DEFAULT_TIMEOUT = 30

    def __init__(
        self,
        base_url: str,
        api_key: str,
        identity: Optional[str] = None,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = 0,
        verify_ssl: bool = True,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize GED client.

        Args:
            base_url: API root (e.g., "https://ged.example.com/api/")
            api_key: API key sent as x-apikey during the handshake
            identity: Caller login for the handshake (lower-cased);
                falls back to a placeholder identity when empty
            timeout: Request timeout in seconds
            max_retries: Transport-level retries (0 = single attempt)
            verify_ssl: Verify TLS certificates
            session: Pre-configured requests session to use as transport
            logger: Logger receiving pipeline errors and notices
        """
        self.base_url = base_url.rstrip("/") + "/"
        self.api_key = api_key
        self.identity = (identity or DEFAULT_IDENTITY).lower()
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.logger = logger or logging.getLogger(__name__)

        self._token: Optional[str] = None
        self._token_lock = threading.Lock()

        self._owns_session = session is None
        if session is None:
            session = requests.Session()
            retry_strategy = Retry(
                total=max_retries,
                backoff_factor=0.5,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=["GET", "POST", "PUT", "DELETE"],
                raise_on_status=False,
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self.session = session

    @classmethod
    def from_config(
        cls,
        config: GedConfig,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "GedClient":
        """Create a client from a GedConfig."""
        return cls(
            base_url=config.base_url,
            api_key=config.api_key,
            identity=config.identity,
            timeout=config.timeout,
            max_retries=config.max_retries,
            verify_ssl=config.verify_ssl,
            session=session,
            logger=logger,
        )

    def close(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "GedClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _url(self, resource_uri: str) -> str:
        return f"{self.base_url}{resource_uri.lstrip('/')}"

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def connect(self) -> str:
        """
        Perform the API-key handshake and return a session token.

        Raises:
            GedConnectionError: The service could not be reached
            GedAuthenticationError: The handshake was rejected or carried no token
        """
        try:
            response = self.session.get(
                self._url(f"users/{self.identity}"),
                headers={"x-apikey": self.api_key, "Accept": JSON_MIME_TYPE},
                timeout=self.timeout,
                verify=self.verify_ssl,
            )
        except requests.exceptions.RequestException as e:
            raise GedConnectionError(f"Failed to connect to GED at {self.base_url}: {e}") from e

        if not _is_success(response.status_code):
            raise GedAuthenticationError(
                f"GED handshake for '{self.identity}' failed with status {response.status_code}"
            )

        try:
            payload = decode_json_body(response.text)
        except ValueError:
            payload = None

        token = payload.get("token") if isinstance(payload, dict) else None
        if not token:
            raise GedAuthenticationError(
                f"GED handshake for '{self.identity}' returned no token"
            )

        return token

    def get_token(self) -> str:
        """Return the session token, connecting on first use only."""
        if self._token is None:
            with self._token_lock:
                if self._token is None:
                    self._token = self.connect()
        return self._token

    # ------------------------------------------------------------------
    # Request pipeline
    # ------------------------------------------------------------------

    def _log_failure(self, message: str, resource_uri: str, method: str, options: Mapping) -> None:
        context = {
            "uri_resource": resource_uri,
            "method": method,
            "params": _loggable_options(options),
        }
        self.logger.error(
            "%s: %s %s params=%s",
            message,
            method,
            resource_uri,
            context["params"],
            extra={"ged_context": context},
        )

    def _send(
        self,
        resource_uri: str,
        method: str = "GET",
        params: Optional[Mapping[str, Any]] = None,
        with_api_key: bool = False,
    ) -> GedResult:
        """Issue an authenticated call; an OK result carries the raw response."""
        options = _merge_options({"headers": {"Accept": JSON_MIME_TYPE}}, params or {})
        if with_api_key:
            options["headers"] = dict(options["headers"], **{"x-apikey": self.api_key})
        options.setdefault("timeout", self.timeout)
        options.setdefault("verify", self.verify_ssl)

        try:
            url = self._url(append_token(resource_uri, self.get_token()))
            response = self.session.request(method, url, **options)
        except (requests.exceptions.RequestException, GedConnectionError) as e:
            self._log_failure("GED request failed", resource_uri, method, options)
            return GedResult.transport_error(str(e))

        if not _is_success(response.status_code):
            self._log_failure(
                f"GED returned status {response.status_code}", resource_uri, method, options
            )
            return GedResult.not_found(response.status_code, detail=response.reason)

        return GedResult.ok(response, status_code=response.status_code)

    def request_result(
        self,
        resource_uri: str,
        method: str = "GET",
        params: Optional[Mapping[str, Any]] = None,
        with_api_key: bool = False,
    ) -> GedResult:
        """
        Query a GED resource and decode its JSON body.

        Args:
            resource_uri: URI relative to base_url, may carry a query string
            method: HTTP method
            params: requests options (headers, json, files, data, ...);
                merged over the defaults, caller values win
            with_api_key: Also send the x-apikey header

        Returns:
            GedResult with the decoded body on success
        """
        result = self._send(resource_uri, method, params, with_api_key)
        if not result.is_ok:
            return result

        try:
            value = decode_json_body(result.value.text)
        except ValueError as e:
            self.logger.error(
                "GED returned an invalid JSON body: %s %s (%s)", method, resource_uri, e
            )
            return GedResult.transport_error(f"Invalid JSON body: {e}")

        return GedResult.ok(value, status_code=result.status_code)

    def request(
        self,
        resource_uri: str,
        method: str = "GET",
        params: Optional[Mapping[str, Any]] = None,
        with_api_key: bool = False,
    ) -> Any:
        """Query a GED resource; returns the decoded body, or None on failure."""
        return self.request_result(resource_uri, method, params, with_api_key).value

    # ------------------------------------------------------------------
    # Doctypes and metadata
    # ------------------------------------------------------------------

    def get_doctypes_by_workspace(self, workspace: str) -> Optional[dict]:
        """Get the doctypes of a workspace (raw envelope)."""
        return self.request(f"doctype/getdoctypebyworkspace?w={workspace}")

    def get_metadata_by_doctype(self, doctype_id: str) -> Optional[list]:
        """Get the metadata definitions of a doctype."""
        response = self.request(f"metadata/getmetadabydoctype?doctypeIds={doctype_id}")
        if response is None:
            return None

        records = Envelope.from_api_response(response).records
        if not records or not isinstance(records[0], dict):
            return None
        return records[0].get("metadata")

    # ------------------------------------------------------------------
    # Users and profiles
    # ------------------------------------------------------------------

    def get_user(self, username: str) -> Optional[dict]:
        return self.request(f"users/{username}")

    def create_user(self, username: str, profile_id: str) -> Union[dict, bool]:
        """
        Create a GED user attached to a profile.

        Returns:
            The created user record, or False if the service refused it

        Raises:
            GedError: The service could not be reached
        """
        result = self.request_result(
            "users",
            "POST",
            {"json": {"username": username, "profileId": profile_id}},
        )
        if result.is_transport_error:
            raise GedError(f"Unable to create user '{username}' in GED: {result.detail}")
        if not result.is_ok:
            return False
        return result.value

    def get_profile(self, profile_id: str) -> dict:
        """
        Get a profile by ID.

        Raises:
            GedNotFoundError: The profile does not exist
        """
        response = self.request(f"profiles/{profile_id}")
        if response is None:
            raise GedNotFoundError(f"Profile '{profile_id}' does not exist in GED")
        return response

    def get_user_profiles(self) -> Optional[list]:
        """Get all user profiles."""
        return self.request("profiles")

    def get_profile_by_slug(self, slug: str) -> dict:
        """
        Find a profile by display name.

        Raises:
            GedNotFoundError: No profile has this display name
        """
        for raw in Envelope.from_api_response(self.get_user_profiles()).records:
            if isinstance(raw, dict) and Profile.from_api_response(raw).display_name == slug:
                return raw

        raise GedNotFoundError(f"Profile '{slug}' does not exist in GED")

    def update_profile(
        self,
        profile_id: str,
        users: Optional[list[dict]] = None,
        display_name: Optional[str] = None,
        jupiter_right: Any = None,
    ) -> Optional[dict]:
        """
        Update a profile, overlaying only the provided fields.

        Raises:
            GedNotFoundError: The profile does not exist
        """
        parameters = dict(self.get_profile(profile_id))

        if users is not None:
            parameters["users"] = users
        if display_name is not None:
            parameters["displayName"] = display_name
        if jupiter_right is not None:
            parameters["jupiterRight"] = jupiter_right

        return self.request(f"profiles/{profile_id}", "PUT", {"json": parameters})

    def remove_user_from_profile(self, username: str, profile_id: str) -> Optional[dict]:
        """Remove every membership of ``username`` from a profile."""
        profile = Profile.from_api_response(self.get_profile(profile_id))
        return self.update_profile(profile_id, profile.without_member(username))

    def add_user_to_profile(
        self,
        profile_id: str,
        username: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Optional[dict]:
        """
        Add a user to a profile.

        Any existing membership for the user is removed first so the profile
        never lists a user twice. The two updates are not atomic.

        Raises:
            GedNotFoundError: The user or the profile does not exist
        """
        if self.get_user(username) is None:
            raise GedNotFoundError(f"User '{username}' does not exist in GED")

        self.remove_user_from_profile(username, profile_id)
        profile = Profile.from_api_response(self.get_profile(profile_id))

        users = profile.without_member(username)
        users.append(ProfileMember.build(username, first_name, last_name, email).to_api_payload())

        return self.update_profile(profile_id, users)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def post_document(
        self,
        file_or_content: Union[str, bytes, os.PathLike],
        workspace: str,
        metadata: dict,
        doctype: str,
        mime_type: str = "application/pdf",
        extension: str = "pdf",
        delete_file_after: bool = True,
        custom_filename: Optional[str] = None,
    ) -> Optional[dict]:
        """
        Upload a document.

        Args:
            file_or_content: Path of a local file, or the raw file content
            workspace: Target workspace
            metadata: Mapping systemName -> {"value": ..., "label": ...}
            doctype: Doctype name
            mime_type: MIME type of the document
            extension: File extension of the document
            delete_file_after: Delete the local file once uploaded
            custom_filename: Filename to use instead of the path's basename

        Returns:
            The service response, or None if the upload failed

        Raises:
            GedMissingFilenameError: Content given without custom_filename
        """
        path = _existing_file(file_or_content)

        if custom_filename is not None:
            filename = custom_filename
        elif path is not None:
            filename = path.name
        else:
            raise GedMissingFilenameError("No filename provided for the uploaded document")

        if path is not None:
            content = path.read_bytes()
        elif isinstance(file_or_content, str):
            content = file_or_content.encode("utf-8")
        else:
            content = bytes(file_or_content)

        data = {
            "doctype": doctype,
            "workspace": workspace,
            "status": DOCUMENT_STATUS_ACTIVE,
            "mimeType": mime_type,
            "extension": extension,
            "metadata": metadata,
        }
        params = {
            "files": {
                "uploadFile": (Path(filename).stem, content),
                "data": (None, json.dumps(data)),
            }
        }

        response = self.request("document/quick-insert", "POST", params)

        if response is not None:
            if delete_file_after and path is not None:
                path.unlink(missing_ok=True)
            return response

        context = {
            "file_or_path": str(path) if path is not None else FILE_CONTENT_PLACEHOLDER,
            "workspace": workspace,
            "metadata": metadata,
            "doctype": doctype,
            "mime_type": mime_type,
            "extension": extension,
        }
        self.logger.error(
            "Failed to send document to GED: %s", context, extra={"ged_context": context}
        )
        return None

    def get_document_url(self, document_id: str) -> str:
        """Direct download URL of a document (no network call once connected)."""
        return f"{self.base_url}version/downloadVersion?documentId={document_id}&token={self.get_token()}"

    def download_document(self, document_id: str) -> DownloadedFile:
        """
        Download the current version of a document.

        Raises:
            GedNotFoundError: The document could not be downloaded
        """
        result = self._send(
            f"version/downloadVersion?documentId={document_id}",
            params={"headers": {"Accept": "*/*"}},
        )
        if not result.is_ok:
            raise GedNotFoundError(f"Document '{document_id}' could not be downloaded from GED")

        response = result.value
        file_name = parse_content_disposition(response.headers.get("Content-Disposition"))

        self.logger.info("Document %s downloaded from GED", document_id)

        return DownloadedFile(
            file_name=file_name or f"document_{document_id}",
            file_content=response.content,
        )

    def download_from_metadata(
        self, system_name: str, ids: list
    ) -> Optional[DownloadedFile]:
        """Download a ZIP of the documents whose ``system_name`` metadata is in ``ids``."""
        result = self._send(
            "version/downloadFromMetadata",
            "POST",
            {
                "json": {"systemName": system_name, "ids": ids},
                "headers": {"Accept": "*/*"},
            },
            with_api_key=True,
        )
        if not result.is_ok:
            return None

        response = result.value
        file_name = parse_content_disposition(response.headers.get("Content-Disposition"))

        self.logger.info("Documents for %s %s downloaded from GED", system_name, ids)

        return DownloadedFile(
            file_name=file_name or f"{system_name}.zip",
            file_content=response.content,
        )

    def get_documents(
        self,
        workspace: str,
        metadata_filters: Optional[dict] = None,
        with_metadata: bool = False,
    ) -> Optional[dict[str, list]]:
        """
        Get the documents of a workspace grouped by doctype.

        Args:
            workspace: Workspace to list
            metadata_filters: Mapping systemName -> value or list of values
                (see build_metadata_query for how values combine)
            with_metadata: Ask the service to include document metadata

        Returns:
            Mapping doctype name -> document records, or None on failure
        """
        uri = f"document/tree?w={workspace}"
        if with_metadata:
            uri += "&withMetadata"

        query = build_metadata_query(metadata_filters)
        if query:
            uri += f"&q={query}"

        response = self.request(uri)
        if response is None:
            return None

        nodes = [n for n in Envelope.from_api_response(response).records if isinstance(n, dict)]

        documents: dict[str, list] = {}
        dir_names = {}
        for node in nodes:
            if node.get("type") == "dir":
                dir_names[node.get("id")] = node.get("text")
                documents[node.get("text")] = []

        for node in nodes:
            if node.get("type") == "dir":
                continue
            parent_name = dir_names.get(node.get("parent"))
            if parent_name is None:
                self.logger.warning(
                    "Document %s has unknown parent %s, skipped", node.get("id"), node.get("parent")
                )
                continue
            documents[parent_name].append(node)

        return documents

    def search_documents(
        self,
        workspace: str,
        from_date=None,
        to_date=None,
        with_deleted: bool = False,
    ) -> Optional[list]:
        """Search documents of a workspace by modification date."""
        uri = f"document/search?w={workspace}"
        if from_date:
            uri += f"&date_modification={format_search_date(from_date)}"
        if to_date:
            uri += f"&date_modification_fin={format_search_date(to_date)}"
        if with_deleted:
            uri += "&withDeleted"

        response = self.request(uri)
        if response is None:
            return None

        documents = []
        for item in Envelope.from_api_response(response).records:
            if isinstance(item, list):
                documents.extend(item)
            else:
                documents.append(item)
        return documents

    def delete_document(self, document_id: str) -> bool:
        """Delete a document; returns whether the service accepted it."""
        return self.request_result(f"documents/{document_id}", "DELETE").is_ok

    def archive_documents(self, metadata_list: list, expiration_date: str) -> Optional[dict]:
        """Archive the documents matching ``metadata_list`` until ``expiration_date``."""
        response = self.request(
            "document/archive",
            "POST",
            {"json": {"metadatas": metadata_list, "expires": expiration_date}},
            with_api_key=True,
        )

        context = {
            "metadatas": metadata_list,
            "expiration_date": expiration_date,
            "response": response,
        }
        self.logger.log(
            NOTICE, "GED archive status: %s", context, extra={"ged_context": context}
        )
        return response

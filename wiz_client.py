"""
Wiz GraphQL API client
"""

import os
import logging
from typing import Any, Dict, Optional, Type

import requests
from pydantic import BaseModel, ValidationError
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from exceptions import WizRequestError


logger = logging.getLogger(__name__)

DEFAULT_AUTH_URL = "https://auth.app.wiz.io/oauth/token"
DEFAULT_AUDIENCE = "wiz-api"
DEFAULT_TIMEOUT = 60
PROJECT_MATCH_STRATEGIES = ("ordered", "unordered")


class WizClient:
    """
    Executes GraphQL documents against the Wiz API.
    Also carries the provider settings the reconciler needs, so the same
    instance is passed to every operation.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        api_token: Optional[str] = None,
        auth_url: Optional[str] = None,
        project_match: Optional[str] = None,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url or os.getenv("WIZ_API_URL")
        self.client_id = client_id or os.getenv("WIZ_CLIENT_ID")
        self.client_secret = client_secret or os.getenv("WIZ_CLIENT_SECRET")
        self.api_token = api_token or os.getenv("WIZ_API_TOKEN", "")
        self.auth_url = auth_url or os.getenv("WIZ_AUTH_URL", DEFAULT_AUTH_URL)
        self.project_match = (project_match or os.getenv("WIZ_PROJECT_MATCH", "ordered")).lower()
        self.timeout = timeout or int(os.getenv("WIZ_REQUEST_TIMEOUT", str(DEFAULT_TIMEOUT)))
        self.session = session or self._build_session()

        if self.project_match not in PROJECT_MATCH_STRATEGIES:
            raise ValueError(
                f"Unknown project match strategy '{self.project_match}', "
                f"expected one of: {', '.join(PROJECT_MATCH_STRATEGIES)}"
            )

    @staticmethod
    def _build_session() -> requests.Session:
        session = requests.Session()
        retries = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[429, 502, 503, 504],
            allowed_methods=["POST"],
        )
        session.mount("https://", HTTPAdapter(max_retries=retries))
        session.mount("http://", HTTPAdapter(max_retries=retries))
        return session

    def connect(self):
        """Obtain a bearer token, unless a static API token was configured."""
        if not self.api_url:
            raise WizRequestError(["WIZ_API_URL is not set"], "client", "connect")

        logger.info(f"Connecting to Wiz API: {self.api_url}")

        if self.api_token:
            logger.info("Using static API token")
            return

        if not self.client_id or not self.client_secret:
            raise WizRequestError(["WIZ_CLIENT_ID and WIZ_CLIENT_SECRET are required"], "client", "connect")

        try:
            response = self.session.post(
                self.auth_url,
                data={
                    "grant_type": "client_credentials",
                    "audience": DEFAULT_AUDIENCE,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Failed to authenticate against {self.auth_url}: {e}")
            raise WizRequestError([str(e)], "client", "connect") from e

        if response.status_code >= 400:
            raise WizRequestError(
                [f"authentication failed with status {response.status_code}: {response.text[:500]}"],
                "client",
                "connect",
            )

        token = self._decode_json(response, "client", "connect").get("access_token")
        if not token:
            raise WizRequestError(["authentication response did not contain an access token"], "client", "connect")

        self.api_token = token
        logger.info("Successfully authenticated to Wiz")

    @staticmethod
    def _decode_json(response, resource: str, operation: str) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as e:
            raise WizRequestError([f"invalid JSON response: {e}"], resource, operation) from e

        if not isinstance(payload, dict):
            raise WizRequestError([f"expected a JSON object, got {type(payload).__name__}"], resource, operation)
        return payload

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }

    def _post(self, body: Dict[str, Any], resource: str, operation: str):
        try:
            return self.session.post(
                self.api_url,
                json=body,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Request for {resource} {operation} failed: {e}")
            raise WizRequestError([str(e)], resource, operation) from e

    def process_request(
        self,
        variables: Dict[str, Any],
        response_model: Optional[Type[BaseModel]],
        query: str,
        resource: str,
        operation: str,
    ):
        """
        Execute a GraphQL document and decode its data.
        Returns the data validated into response_model, or the raw data dict
        when no model is given. Raises WizRequestError on network failures,
        error statuses and GraphQL error payloads.
        An expired token is renewed once when client credentials are set.
        """
        if not self.api_token:
            self.connect()

        logger.debug(f"Executing {resource} {operation} request")

        body = {"query": query, "variables": variables}
        response = self._post(body, resource, operation)

        if response.status_code == 401 and self.client_id and self.client_secret:
            logger.info("Wiz token rejected, authenticating again")
            self.api_token = ""
            self.connect()
            response = self._post(body, resource, operation)

        if response.status_code >= 400:
            logger.error(f"Request for {resource} {operation} failed with status {response.status_code}")
            raise WizRequestError(
                [f"status {response.status_code}: {response.text[:500]}"], resource, operation
            )

        payload = self._decode_json(response, resource, operation)

        errors = payload.get("errors")
        if errors:
            messages = [error.get("message", str(error)) if isinstance(error, dict) else str(error) for error in errors]
            logger.warning(f"GraphQL errors returned for {resource} {operation}: {messages}")
            raise WizRequestError(messages, resource, operation)

        data = payload.get("data") or {}
        if response_model is None:
            return data

        try:
            return response_model.model_validate(data)
        except ValidationError as e:
            raise WizRequestError([f"unexpected response shape: {e}"], resource, operation) from e

    def close(self):
        """Close the underlying HTTP session."""
        if self.session:
            self.session.close()
            logger.debug("Wiz client session closed")

"""
HTTP clients for the collaborating services: plan creation and the
paper/client masters. Each call is a single blocking request, never retried.
"""

from typing import Any, Dict, List, Optional
import json
import logging

import requests
from pydantic import ValidationError

from .. import config, schemas
from ..exceptions import MasterDataError, NodeNotFound, SubmissionFailure

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    'Content-Type': 'application/json',
    'ngrok-skip-browser-warning': 'true'
}


def _error_detail(response: requests.Response) -> str:
    """Upstream error text as the service sent it"""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict) and "detail" in body:
        detail = body["detail"]
        return detail if isinstance(detail, str) else json.dumps(detail)
    return response.text


class PlanServiceClient:

    def __init__(
        self,
        base_url: str = config.PLAN_SERVICE_URL,
        create_path: str = config.PLAN_CREATE_PATH,
        timeout: float = config.EXTERNAL_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.create_path = create_path
        self.timeout = timeout

    def create_plan(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Hand a pruned plan to the plan service.

        Returns:
            The service response (created plan id and production hierarchy)

        Raises:
            SubmissionFailure: non-success status or network error, detail verbatim
        """
        url = f"{self.base_url}{self.create_path}"
        try:
            response = requests.post(url, json=payload, headers=DEFAULT_HEADERS, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"❌ Plan service unreachable: {e}")
            raise SubmissionFailure(f"Network error: {e}")

        if response.status_code not in (200, 201):
            detail = _error_detail(response)
            logger.error(f"❌ Plan service error ({response.status_code}): {detail}")
            raise SubmissionFailure(detail, status_code=response.status_code)

        try:
            result = response.json()
        except ValueError:
            raise SubmissionFailure(f"Plan service returned invalid JSON: {response.text}", status_code=response.status_code)
        if not isinstance(result, dict):
            logger.error(f"❌ Plan service returned {type(result).__name__} instead of an object: {response.text}")
            raise SubmissionFailure(
                f"Plan service returned an unexpected response: {response.text}", status_code=response.status_code
            )

        logger.info(f"✅ Plan created: {result.get('plan_id') or result.get('id')}")
        return result


class MasterDataClient:

    def __init__(self, base_url: str = config.MASTER_SERVICE_URL, timeout: float = config.EXTERNAL_TIMEOUT_SECONDS):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _get_list(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        try:
            response = requests.get(
                f"{self.base_url}{path}", params=params, headers=DEFAULT_HEADERS, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise MasterDataError(f"Network error loading {path}: {e}")

        if response.status_code != 200:
            raise MasterDataError(f"Failed to load {path} ({response.status_code}): {_error_detail(response)}")

        data = response.json()
        if isinstance(data, dict):
            data = data.get("items", [])
        if not isinstance(data, list):
            raise MasterDataError(f"Unexpected response shape from {path}")
        return data

    def fetch_papers(self) -> List[schemas.PaperRecord]:
        return self._validate(self._get_list("/papers"), schemas.PaperRecord, "paper")

    def fetch_clients(self) -> List[schemas.ClientRecord]:
        return self._validate(self._get_list("/clients", params={"status": "active"}), schemas.ClientRecord, "client")

    @staticmethod
    def _validate(rows: List[Dict[str, Any]], model, kind: str) -> list:
        records = []
        for row in rows:
            try:
                records.append(model.model_validate(row))
            except ValidationError as e:
                # One bad master row should not block the session
                logger.warning(f"⚠️ Skipping malformed {kind} record {row.get('id')}: {e.error_count()} error(s)")
        return records


class MasterDataCache:
    """Paper and client masters, loaded once per session and then static."""

    def __init__(self, papers: Optional[List[schemas.PaperRecord]] = None, clients: Optional[List[schemas.ClientRecord]] = None):
        self.papers: Dict[str, schemas.PaperRecord] = {}
        self.clients: Dict[str, schemas.ClientRecord] = {}
        self.loaded = False
        if papers is not None or clients is not None:
            self._fill(papers or [], clients or [])

    def load(self, client: MasterDataClient) -> "MasterDataCache":
        if self.loaded:
            return self
        self._fill(client.fetch_papers(), client.fetch_clients())
        logger.info(f"📚 Masters loaded: {len(self.papers)} active papers, {len(self.clients)} clients")
        return self

    def _fill(self, papers: List[schemas.PaperRecord], clients: List[schemas.ClientRecord]) -> None:
        self.papers = {p.id: p for p in papers if p.status == schemas.PaperStatus.ACTIVE.value}
        self.clients = {c.id: c for c in clients}
        self.loaded = True

    def get_paper(self, paper_id: str) -> schemas.PaperRecord:
        paper = self.papers.get(str(paper_id))
        if paper is None:
            raise NodeNotFound("Active paper", str(paper_id))
        return paper

    def client_name(self, client_id: str) -> str:
        """Company name for a client id; the id itself when the client is unknown."""
        client = self.clients.get(str(client_id))
        return client.company_name if client else str(client_id)

    def has_client(self, client_id: str) -> bool:
        return str(client_id) in self.clients

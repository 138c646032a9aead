"""Flowable REST notifier."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from ..errors import NotificationError
from .base import ProcessEngineNotifier

logger = logging.getLogger(__name__)

UPLOAD_TASK_NAME = "Upload Document"


def _variables(values: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [{"name": name, "value": value} for name, value in values.items()]


class FlowableNotifier(ProcessEngineNotifier):
    """Mirror document lifecycle events into a Flowable process engine.

    Every call goes through the ``process-api`` REST endpoint with basic
    auth. Transport and HTTP errors are raised as :class:`NotificationError`.
    """

    def __init__(
        self,
        rest_endpoint: str = "http://localhost:8080/flowable-task/process-api",
        username: str = "admin",
        password: str = "test",
        process_definition_key: str = "process",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.rest_endpoint = rest_endpoint.rstrip("/")
        self.process_definition_key = process_definition_key
        self._auth = (username, password)
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.rest_endpoint,
                auth=self._auth,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._get_client().request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NotificationError(f"{method} {url} failed: {exc}") from exc
        return response

    # ------------------------------------------------------------------
    async def start_process(
        self, document_id: str, variables: Dict[str, Any]
    ) -> Optional[str]:
        values = {
            "documentId": document_id,
            **variables,
            "startTime": datetime.now(timezone.utc).isoformat(),
        }
        response = await self._request(
            "POST",
            "/runtime/process-instances",
            json={
                "processDefinitionKey": self.process_definition_key,
                "variables": _variables(values),
            },
        )
        process_instance_id = response.json()["id"]
        logger.info(
            f"Started Flowable process {process_instance_id} for document {document_id}"
        )
        await self._complete_upload_task(process_instance_id)
        return process_instance_id

    async def _complete_upload_task(self, process_instance_id: str) -> None:
        """Complete the engine's upload user task; the file is already stored."""
        try:
            response = await self._request(
                "GET", "/runtime/tasks", params={"processInstanceId": process_instance_id}
            )
            upload_task = next(
                (t for t in response.json().get("data", []) if t.get("name") == UPLOAD_TASK_NAME),
                None,
            )
            if upload_task is None:
                logger.info(
                    f"No '{UPLOAD_TASK_NAME}' task for process {process_instance_id}; "
                    "process may have already progressed"
                )
                return
            await self._request(
                "POST", f"/runtime/tasks/{upload_task['id']}", json={"action": "complete"}
            )
            logger.info(f"Completed '{UPLOAD_TASK_NAME}' task {upload_task['id']}")
        except NotificationError as exc:
            logger.warning(f"Could not complete upload task for {process_instance_id}: {exc}")

    async def signal_completion(
        self, process_instance_id: str, result: Dict[str, Any]
    ) -> None:
        await self._request(
            "POST",
            f"/runtime/process-instances/{process_instance_id}/variables",
            json=_variables({"completed": True, "result": json.dumps(result)}),
        )

    async def signal_error(self, process_instance_id: str, message: str) -> None:
        await self._request(
            "POST",
            f"/runtime/process-instances/{process_instance_id}/variables",
            json=_variables({"error": True, "errorMessage": message}),
        )

    async def deploy_process(self, bpmn: str) -> Optional[str]:
        """Deploy ``bpmn`` unless a definition with our key already exists."""
        existing = await self._request(
            "GET",
            "/repository/process-definitions",
            params={"key": self.process_definition_key},
        )
        if existing.json().get("data"):
            logger.info(f"Process {self.process_definition_key} already deployed")
            return None

        response = await self._request(
            "POST",
            "/repository/deployments",
            files={"file": ("document_processing.bpmn", bpmn.encode("utf-8"), "text/xml")},
        )
        deployment_id = response.json().get("id")
        logger.info(f"Process deployed successfully: {deployment_id}")
        return deployment_id

    async def list_process_instances(self) -> List[Dict[str, Any]]:
        response = await self._request(
            "GET",
            "/runtime/process-instances",
            params={"processDefinitionKey": self.process_definition_key},
        )
        return [
            {
                "process_instance_id": instance.get("id"),
                "process_definition_key": instance.get("processDefinitionKey"),
                "status": "completed" if instance.get("ended") else "active",
                "started": instance.get("startTime"),
                "ended": instance.get("endTime"),
            }
            for instance in response.json().get("data", [])
        ]

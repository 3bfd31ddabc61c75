"""
Monitoring API client
JSON API client implementing both the data source and the action service
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from ..exceptions import ActionError, FetchError, NotFoundError
from ..models import JobInfo, Overview, ProcessInfo, QueueInfo, WorkerInfo
from .records import (
    check_source,
    job_from_dict,
    overview_from_dict,
    process_from_dict,
    queue_from_dict,
    worker_from_dict,
)

logger = logging.getLogger(__name__)

# Job sources map to these collection paths on the server
SOURCE_PATHS = {
    "retry": "retries",
    "dead": "dead",
    "scheduled": "scheduled",
}


def _items(response: Any, key: str) -> List[Dict[str, Any]]:
    if isinstance(response, dict) and key in response:
        return response[key] or []
    return response if isinstance(response, list) else []


class MonitoringClient:
    """
    Monitoring API client

    Usage:
        client = MonitoringClient(
            server_url='http://localhost:9292',
            api_key='your-api-key'
        )

        queues = client.queues()
        client.retry_job('b4a577edbccf1d805744efa9', 'retry')
    """

    def __init__(
        self,
        server_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10,
    ):
        self.server_url = server_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers['Accept'] = 'application/json'

        if api_key:
            self.session.headers['Authorization'] = f'Bearer {api_key}'

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict] = None,
        json: Optional[Dict] = None
    ) -> Any:
        """Make HTTP request to API"""
        url = f'{self.server_url}{path}'

        response = self.session.request(
            method,
            url,
            params=params,
            json=json,
            timeout=self.timeout
        )
        response.raise_for_status()

        if response.status_code == 204:
            return None

        try:
            return response.json()
        except ValueError:
            return response.text

    def _get(self, path: str, params: Optional[Dict] = None) -> Any:
        """GET for the read side: every failure becomes a FetchError"""
        try:
            return self._request('GET', path, params=params)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise FetchError(f'GET {path} failed: {e}', status_code=status) from e
        except requests.RequestException as e:
            raise FetchError(f'GET {path} failed: {e}') from e

    def _mutate(self, method: str, path: str, what: str) -> Any:
        """POST/DELETE for the write side: 404 is NotFoundError, the rest ActionError"""
        try:
            return self._request(method, path)
        except requests.HTTPError as e:
            if e.response is not None and e.response.status_code == 404:
                raise NotFoundError(f'{what} not found') from e
            raise ActionError(f'{method} {path} failed: {e}') from e
        except requests.RequestException as e:
            raise ActionError(f'{method} {path} failed: {e}') from e

    # ------------------------------------------------------------------
    # MonitoringDataSource
    # ------------------------------------------------------------------

    def overview(self) -> Overview:
        response = self._get('/api/v1/stats')
        return overview_from_dict(response if isinstance(response, dict) else {})

    def queues(self) -> List[QueueInfo]:
        return [queue_from_dict(q) for q in _items(self._get('/api/v1/queues'), 'queues')]

    def processes(self) -> List[ProcessInfo]:
        return [process_from_dict(p) for p in _items(self._get('/api/v1/processes'), 'processes')]

    def workers(self) -> List[WorkerInfo]:
        return [worker_from_dict(w) for w in _items(self._get('/api/v1/workers'), 'workers')]

    def retry_jobs(self, limit: int) -> List[JobInfo]:
        return self._jobs('/api/v1/retries', limit)

    def scheduled_jobs(self, limit: int) -> List[JobInfo]:
        return self._jobs('/api/v1/scheduled', limit)

    def dead_jobs(self, limit: int) -> List[JobInfo]:
        return self._jobs('/api/v1/dead', limit)

    def queue_jobs(self, name: str, limit: int) -> List[JobInfo]:
        return self._jobs(f'/api/v1/queues/{quote(name, safe="")}/jobs', limit)

    def _jobs(self, path: str, limit: int) -> List[JobInfo]:
        response = self._get(path, params={'limit': limit})
        return [job_from_dict(j) for j in _items(response, 'jobs')]

    # ------------------------------------------------------------------
    # JobActionService
    # ------------------------------------------------------------------

    def retry_job(self, jid: str, source: str) -> bool:
        path = f'/api/v1/{SOURCE_PATHS[check_source(source)]}/{quote(jid, safe="")}/retry'
        self._mutate('POST', path, f'Job (JID: {jid})')
        return True

    def delete_job(self, jid: str, source: str) -> bool:
        path = f'/api/v1/{SOURCE_PATHS[check_source(source)]}/{quote(jid, safe="")}'
        self._mutate('DELETE', path, f'Job (JID: {jid})')
        return True

    def retry_all(self, source: str) -> int:
        path = f'/api/v1/{SOURCE_PATHS[check_source(source)]}/retry_all'
        return self._count(self._mutate('POST', path, f'{source} set'))

    def delete_all(self, source: str) -> int:
        path = f'/api/v1/{SOURCE_PATHS[check_source(source)]}'
        return self._count(self._mutate('DELETE', path, f'{source} set'))

    def quiet_process(self, identity: str) -> bool:
        path = f'/api/v1/processes/{quote(identity, safe="")}/quiet'
        self._mutate('POST', path, f'Process (identity: {identity})')
        return True

    def stop_process(self, identity: str) -> bool:
        path = f'/api/v1/processes/{quote(identity, safe="")}/stop'
        self._mutate('POST', path, f'Process (identity: {identity})')
        return True

    def delete_queue_job(self, queue: str, jid: str) -> bool:
        path = f'/api/v1/queues/{quote(queue, safe="")}/jobs/{quote(jid, safe="")}'
        self._mutate('DELETE', path, f'Job (JID: {jid})')
        return True

    @staticmethod
    def _count(response: Any) -> int:
        if isinstance(response, dict):
            try:
                return int(response.get('count', 0))
            except (TypeError, ValueError):
                logger.warning("Unexpected count in response: %r", response)
        return 0

# Copyright 2025 ApeCloud, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


import logging
import os
import ssl
from abc import ABC, abstractmethod
from typing import List, Optional

import httpx
from pydantic import ValidationError

from light_operator.config import KubernetesSettings
from light_operator.k8s.crd import API_VERSION, GROUP, KIND, PLURAL, VERSION, Condition, Light
from light_operator.k8s.errors import KubernetesError

logger = logging.getLogger(__name__)

APPLY_PATCH_CONTENT_TYPE = "application/apply-patch+yaml"


class LightStore(ABC):
    """Abstract access to stored Light resources"""

    @abstractmethod
    async def list_lights(self) -> List[Light]:
        """
        List Light resources across all namespaces

        Returns:
            Every resource that could be decoded; undecodable ones are skipped
        """
        pass

    @abstractmethod
    async def get_light(self, namespace: str, name: str) -> Optional[Light]:
        """
        Fetch a single Light resource

        Args:
            namespace: Resource namespace
            name: Resource name

        Returns:
            The resource, or None if it no longer exists
        """
        pass

    @abstractmethod
    async def patch_status(self, namespace: str, name: str, conditions: List[Condition]) -> None:
        """
        Replace the status conditions owned by the operator

        Args:
            namespace: Resource namespace
            name: Resource name
            conditions: Complete condition list to apply
        """
        pass

    async def aclose(self) -> None:
        pass


class KubernetesLightStore(LightStore):
    """LightStore talking to the Kubernetes API server over HTTP"""

    def __init__(
        self,
        config: KubernetesSettings,
        field_manager: str = "cntrlr",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.field_manager = field_manager

        headers = {}
        token = self._read_token(config.token_path)
        if token:
            headers["Authorization"] = f"Bearer {token}"

        verify = False
        if config.verify_ssl:
            verify = True
            if config.ca_path and os.path.exists(config.ca_path):
                verify = ssl.create_default_context(cafile=config.ca_path)

        self.client = httpx.AsyncClient(
            base_url=config.api_server,
            headers=headers,
            timeout=config.request_timeout,
            verify=verify,
            transport=transport,
        )

    @staticmethod
    def _read_token(token_path: Optional[str]) -> Optional[str]:
        if not token_path or not os.path.exists(token_path):
            logger.debug("No service account token found, API requests are unauthenticated")
            return None
        with open(token_path) as f:
            return f.read().strip()

    @staticmethod
    def _resource_path(namespace: str, name: str) -> str:
        return f"/apis/{GROUP}/{VERSION}/namespaces/{namespace}/{PLURAL}/{name}"

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise KubernetesError(f"{method} {url}: {e}") from e

    @staticmethod
    def _check(response: httpx.Response):
        if not response.is_success:
            raise KubernetesError(
                f"{response.request.method} {response.request.url.path} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

    @staticmethod
    def _decode(response: httpx.Response) -> dict:
        try:
            return response.json()
        except ValueError as e:
            raise KubernetesError(f"Invalid response body: {e}") from e

    async def list_lights(self) -> List[Light]:
        response = await self._request("GET", f"/apis/{GROUP}/{VERSION}/{PLURAL}")
        self._check(response)

        lights = []
        for item in self._decode(response).get("items") or []:
            try:
                lights.append(Light.model_validate(item))
            except ValidationError as e:
                name = (item.get("metadata") or {}).get("name")
                logger.warning(f"Skipping undecodable Light {name}: {e}")
        return lights

    async def get_light(self, namespace: str, name: str) -> Optional[Light]:
        response = await self._request("GET", self._resource_path(namespace, name))
        if response.status_code == 404:
            return None
        self._check(response)
        try:
            return Light.model_validate(self._decode(response))
        except ValidationError as e:
            raise KubernetesError(f"Light {namespace}/{name} could not be decoded: {e}") from e

    async def patch_status(self, namespace: str, name: str, conditions: List[Condition]) -> None:
        body = {
            "apiVersion": API_VERSION,
            "kind": KIND,
            "metadata": {"name": name, "namespace": namespace},
            "status": {"conditions": [c.model_dump(mode="json", by_alias=True) for c in conditions]},
        }
        response = await self._request(
            "PATCH",
            f"{self._resource_path(namespace, name)}/status",
            params={"fieldManager": self.field_manager, "force": "true"},
            json=body,
            headers={"Content-Type": APPLY_PATCH_CONTENT_TYPE},
        )
        self._check(response)
        logger.debug(f"Patched status of Light {namespace}/{name}")

    async def aclose(self) -> None:
        await self.client.aclose()

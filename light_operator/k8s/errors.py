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


class ControllerError(Exception):
    """Base class for failures of a reconcile pass"""


class SmartHomeApiError(ControllerError):
    """A smart home call failed; the adapter error is kept as `source`"""

    def __init__(self, source: Exception):
        self.source = source
        super().__init__(f"Smart home API error: {source}")


class KubernetesError(ControllerError):
    """Reading or writing Light resources failed"""

    def __init__(self, detail: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(f"Kubernetes error: {detail}")

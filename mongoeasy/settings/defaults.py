# Copyright DataStax, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from __future__ import annotations

# Defaults/settings for connecting to the document store
DEFAULT_CONNECT_TIMEOUT_MS = 5000
DEFAULT_PING_COMMAND = "ping"

# Defaults/settings for collection operations
DEFAULT_REQUEST_TIMEOUT_MS = 5000
DEFAULT_GENERAL_METHOD_TIMEOUT_MS = 30000
DEFAULT_COLLECTION_ADMIN_TIMEOUT_MS = 60000

# Exit status used when a caller opts into fail-fast connections
FAIL_FAST_EXIT_CODE = 1

# Placeholder for secrets when logging connection strings
FIXED_SECRET_PLACEHOLDER = "***"

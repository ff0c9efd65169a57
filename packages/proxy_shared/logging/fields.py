"""Names of structured log fields emitted by the proxy."""

TIMESTAMP = "timestamp"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "message"
EVENT = "event"
EXCEPTION = "exception"

SERVICE = "service"
ENVIRONMENT = "environment"

# Per-call correlation, taken from envelope metadata.
TRACE_ID = "trace_id"
ENVELOPE_ID = "envelope_id"
PRINCIPAL = "principal"

# Service operation instrumentation.
COMPONENT_ID = "component_id"
API_NAME = "api_name"
SUCCESS = "success"
DURATION_MS = "duration_ms"
ERRORS = "errors"
STAGE = "stage"
CONCERN = "concern"
PUBLIC_API_INVOCATION_EVENT = "public_api_invocation"
PUBLIC_API_COMPLETION_EVENT = "public_api_completion"
PUBLIC_API_INSTRUMENTATION_FAILURE_EVENT = "public_api_instrumentation_failure"

# Inbound HTTP.
HTTP_REQUEST_EVENT = "http_request"
HTTP_METHOD = "http_method"
HTTP_PATH = "http_path"
HTTP_STATUS = "http_status"
CLIENT_ADDRESS = "client_address"

# JSON-RPC calls, named as existing log consumers expect.
RPC_METHOD = "api_method"
RPC_PARAMS = "req_params"
RPC_CLIENT_ID = "client_id"
RPC_RESPONSE = "response"

"""Constants shared across the smoke orchestrator."""

BOT_USERNAME = "smoke_bot"

STATE_BOT_PASSWORD = "smoke.bot_password"
STATE_LAST_RESULTS = "smoke.last_results"
STATE_LAST_RUN = "smoke.last_run"

# Per-test timeout handed to the runner, in milliseconds.
DEFAULT_TIMEOUT_MS = 30_000
# Ceiling for one runner invocation, in seconds.
DEFAULT_PROCESS_TIMEOUT = 300.0
NODE_CHECK_TIMEOUT = 10.0
INSTALL_TIMEOUT = 600.0

MIN_NODE_VERSION = 20

BRIDGE_FILENAME = ".smoke-config.json"
RESULTS_FILENAME = "results.json"
SUITES_DIRNAME = "suites"
DECLARATION_FILENAME = "smoke.suites.yml"

ENV_PARALLEL = "SMOKE_PARALLEL"
ENV_VERBOSE = "SMOKE_VERBOSE"
ENV_HTML_PATH = "SMOKE_HTML_PATH"
ENV_REMOTE_USER = "SMOKE_REMOTE_USER"
ENV_REMOTE_PASS = "SMOKE_REMOTE_PASS"
ENV_LOCAL_URL = "DDEV_PRIMARY_URL"

QUICK_MODE_SUITES = ("core_pages", "auth")

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_SETUP_REQUIRED = 2

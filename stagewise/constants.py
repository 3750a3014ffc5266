TASK_LIST_SUFFIX = "TaskList"
DEFAULT_IDENTITY = "stagewise-worker"
REGISTERED = "REGISTERED"
DEFAULT_MAX_POLL_BACKOFF = 30.0

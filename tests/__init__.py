import os

# must happen before idverify (config singleton) and ddtrace are imported
os.environ["MODE"] = "TESTING"
os.environ.setdefault("DD_TRACE_ENABLED", "false")
os.environ.setdefault("DD_INSTRUMENTATION_TELEMETRY_ENABLED", "false")

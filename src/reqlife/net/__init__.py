"""Request execution: transports, lifecycle state machine, retries, client."""

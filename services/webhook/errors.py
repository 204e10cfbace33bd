"""Exceptions raised by the webhook core."""


class WebhookError(Exception):
    """Base class for webhook failures."""


class ConflictError(WebhookError):
    """The service was updated by another writer since its version was read."""

    def __init__(self, service_id: str, version: int, message: str = ""):
        self.service_id = service_id
        self.version = version
        super().__init__(
            message or f"version {version} of service {service_id} is out of date"
        )


class ServiceModeError(WebhookError):
    """The service is not in replicated mode and cannot be scaled."""


class InvalidReplicasLabelError(WebhookError):
    """The replicas label is not a non-negative base-10 integer."""

    def __init__(self, service_name: str, value: str):
        self.service_name = service_name
        self.value = value
        super().__init__(
            f"service {service_name} has an invalid replicas label: {value!r}"
        )

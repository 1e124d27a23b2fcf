from __future__ import annotations


class ResourceQueryError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class MalformedInput(ResourceQueryError):
    status_code = 400


class InvalidField(MalformedInput):
    def __init__(self, field_name: str):
        super().__init__(f'Unknown field "{field_name}"')
        self.field_name = field_name


class ConfigurationError(ResourceQueryError):
    status_code = 500


class ResourceNotFound(ResourceQueryError):
    status_code = 404

    def __init__(self, resource_name: str):
        super().__init__(f'Resource "{resource_name}" is not registered')
        self.resource_name = resource_name

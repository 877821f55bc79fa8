# Store errors are logged in full; only public_message reaches the caller.


class WaitlistError(Exception):
    status_code = 500
    public_message = "Failed to save email."

    def __init__(self, message=None):
        super().__init__(message or self.public_message)


class ClientInputError(WaitlistError):
    status_code = 400


class InvalidJSONBody(ClientInputError):
    public_message = "Invalid JSON body."


class InvalidEmail(ClientInputError):
    public_message = "Invalid email address."


class ConflictError(WaitlistError):
    status_code = 409
    public_message = "Email already exists."


class StoreError(WaitlistError):
    status_code = 500


class ConfigurationError(StoreError):
    public_message = "Server is not configured."


class TransientInfrastructureError(StoreError):
    public_message = "Failed to save email."

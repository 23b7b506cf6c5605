from modules.core.exceptions import ConflictError


class EmailAlreadyRegistered(ConflictError):
    code = "email_exists"
    default_message = "An account with this email already exists."

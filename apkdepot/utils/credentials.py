"""Login and password format policy."""
import re

LOGIN_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{3,20}$")

# At least 10 characters with one lowercase letter, one uppercase letter and one digit
PASSWORD_MIN_LENGTH = 10
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).{%d,}$" % PASSWORD_MIN_LENGTH, re.DOTALL)


def is_login_valid(login: str) -> bool:
    return isinstance(login, str) and LOGIN_PATTERN.fullmatch(login) is not None


def is_password_valid(password: str) -> bool:
    return isinstance(password, str) and PASSWORD_PATTERN.fullmatch(password) is not None

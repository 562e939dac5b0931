from validators import email as validate_email
from validators.utils import ValidationError

from inkpost.config.settings import settings
from inkpost.core.exceptions.exceptions import CommentValidationError, PostValidationError

NAME_MAX_LENGTH = 50
EMAIL_MAX_LENGTH = 100


class Security:
    """Form validator.

    Behavior:
    - Every check runs before any network call and raises on the first problem.
    - Comment content, nickname and email are required (whitespace-only counts as empty).
    - Emails are checked with validators.email.
    - Content longer than COMMENT_MAX_LENGTH characters is refused.
    """

    def __init__(self, max_content_length: int = None):
        self.max_content_length = max_content_length or settings.COMMENT_MAX_LENGTH

    def is_valid_email(self, address: str) -> bool:
        if not address or not isinstance(address, str):
            return False
        try:
            return validate_email(address.strip()) is True
        except (ValidationError, UnicodeError):
            return False

    def validate_comment(self, content: str, author_name: str, author_email: str) -> None:
        if not (content or "").strip():
            raise CommentValidationError("Please enter a comment")
        if not (author_name or "").strip():
            raise CommentValidationError("Please enter a nickname")
        if not (author_email or "").strip():
            raise CommentValidationError("Please enter an email")
        if not self.is_valid_email(author_email):
            raise CommentValidationError("Please enter a valid email address")
        if len(content) > self.max_content_length:
            raise CommentValidationError(f"Comments cannot exceed {self.max_content_length} characters")
        if len(author_name.strip()) > NAME_MAX_LENGTH:
            raise CommentValidationError(f"Nicknames cannot exceed {NAME_MAX_LENGTH} characters")
        if len(author_email.strip()) > EMAIL_MAX_LENGTH:
            raise CommentValidationError(f"Emails cannot exceed {EMAIL_MAX_LENGTH} characters")

    def validate_post(self, content: str) -> None:
        if not (content or "").strip():
            raise PostValidationError("Post content cannot be empty")

    def validate_column(self, title: str, description: str) -> None:
        if not (title or "").strip() or not (description or "").strip():
            raise PostValidationError("Please fill in the column title and description")

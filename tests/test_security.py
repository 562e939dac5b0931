"""Tests for inkpost.middleware.security."""

import pytest

from inkpost.core.exceptions.exceptions import CommentValidationError, PostValidationError
from inkpost.middleware.security import Security


@pytest.fixture
def security():
    return Security(max_content_length=1000)


class TestCommentValidation:
    def test_valid_comment(self, security):
        security.validate_comment("Nice post", "Ann", "ann@example.com")

    @pytest.mark.parametrize("content,name,email,message", [
        ("", "Ann", "ann@example.com", "Please enter a comment"),
        ("   ", "Ann", "ann@example.com", "Please enter a comment"),
        ("hi", "", "ann@example.com", "Please enter a nickname"),
        ("hi", "Ann", "", "Please enter an email"),
        ("hi", "Ann", "not-an-email", "Please enter a valid email address"),
        ("hi", "Ann", "ann@", "Please enter a valid email address"),
    ])
    def test_rejections(self, security, content, name, email, message):
        with pytest.raises(CommentValidationError) as exc:
            security.validate_comment(content, name, email)
        assert exc.value.message == message

    def test_content_length_limit(self, security):
        security.validate_comment("x" * 1000, "Ann", "ann@example.com")
        with pytest.raises(CommentValidationError) as exc:
            security.validate_comment("x" * 1001, "Ann", "ann@example.com")
        assert exc.value.message == "Comments cannot exceed 1000 characters"

    def test_name_length_limit(self, security):
        with pytest.raises(CommentValidationError):
            security.validate_comment("hi", "n" * 51, "ann@example.com")

    def test_is_valid_email(self, security):
        assert security.is_valid_email("someone@example.org")
        assert not security.is_valid_email("someone at example.org")
        assert not security.is_valid_email(None)


class TestPostValidation:
    def test_empty_post(self, security):
        with pytest.raises(PostValidationError):
            security.validate_post("  ")

    def test_column_requires_title_and_description(self, security):
        security.validate_column("Series", "About the series")
        with pytest.raises(PostValidationError):
            security.validate_column("Series", "")
        with pytest.raises(PostValidationError):
            security.validate_column("", "About")

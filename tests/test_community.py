"""
Tests for community board rules.

Private post scenario: a wrong password leaves the post closed and the view
count unchanged; the right password opens it and counts exactly one view.
"""

import pytest

from services import community
from utils import defaults
from utils.errors import LoginRequiredError, NotFoundError, PermissionDeniedError, PostLockedError, ValidationError
from utils.models import CommunityPost


@pytest.fixture
def posts():
    return [CommunityPost.model_validate(p) for p in defaults.INITIAL_POSTS]


def _views(posts, post_id):
    return community.find_post(posts, post_id).views


class TestOpenPost:

    def test_login_required(self, posts):
        with pytest.raises(LoginRequiredError):
            community.open_post(posts, "post1", None)

    def test_private_post_password_scenario(self, posts, golf_user):
        before = _views(posts, "post2")

        with pytest.raises(PostLockedError):
            community.open_post(posts, "post2", golf_user, password="0000")
        with pytest.raises(PostLockedError):
            community.open_post(posts, "post2", golf_user)
        assert _views(posts, "post2") == before

        updated, post = community.open_post(posts, "post2", golf_user, password="1234")
        assert post.views == before + 1
        assert _views(updated, "post2") == before + 1

    def test_admin_and_author_skip_password(self, posts, admin_user, travel_user):
        _, post = community.open_post(posts, "post2", admin_user)
        assert post.content

        _, post = community.open_post(posts, "post2", travel_user)
        assert post.content

    def test_public_post_counts_view(self, posts, golf_user):
        updated, _ = community.open_post(posts, "post1", golf_user)
        assert _views(updated, "post1") == _views(posts, "post1") + 1

    def test_missing_post(self, posts, golf_user):
        with pytest.raises(NotFoundError):
            community.open_post(posts, "nope", golf_user)


class TestCreateEditDelete:

    def test_create_prepends_with_display_name(self, posts, golf_user):
        updated, post = community.create_post(posts, golf_user, "제목", "본문")

        assert updated[0] is post
        assert post.author == "골프왕"
        assert post.views == 0
        assert len(updated) == len(posts) + 1

    def test_create_requires_login_and_fields(self, posts, golf_user):
        with pytest.raises(LoginRequiredError):
            community.create_post(posts, None, "제목", "본문")
        with pytest.raises(ValidationError):
            community.create_post(posts, golf_user, "  ", "본문")

    def test_private_post_needs_password(self, posts, golf_user):
        with pytest.raises(ValidationError):
            community.create_post(posts, golf_user, "문의", "견적", is_private=True)

        _, post = community.create_post(posts, golf_user, "문의", "견적", is_private=True, password="99")
        assert post.password == "99"

    def test_only_author_or_admin_edits(self, posts, golf_user, travel_user, admin_user):
        with pytest.raises(PermissionDeniedError):
            community.edit_post(posts, "post1", travel_user, "바꿈", "바꿈")

        _, post = community.edit_post(posts, "post1", golf_user, "새 제목", "새 본문")
        assert post.title == "새 제목"

        _, post = community.edit_post(posts, "post1", admin_user, "관리자 수정", "본문")
        assert post.title == "관리자 수정"

    def test_edit_image_and_privacy(self, posts, golf_user):
        _, post = community.edit_post(posts, "post1", golf_user, "t", "c", image="https://img/1.jpg")
        assert post.image == "https://img/1.jpg"

        posts2, _ = community.edit_post(posts, "post1", golf_user, "t", "c", image="https://img/1.jpg")
        _, post = community.edit_post(posts2, "post1", golf_user, "t", "c", image="")
        assert post.image is None

        _, post = community.edit_post(posts, "post1", golf_user, "t", "c", is_private=True, password="pw")
        assert post.is_private and post.password == "pw"

    def test_delete(self, posts, travel_user, admin_user):
        with pytest.raises(PermissionDeniedError):
            community.delete_post(posts, "post1", travel_user)

        remaining = community.delete_post(posts, "post1", admin_user)
        assert [p.id for p in remaining] == ["post2"]

    def test_inputs_are_not_mutated(self, posts, golf_user):
        snapshot = [p.model_dump() for p in posts]
        community.open_post(posts, "post1", golf_user)
        community.add_comment(posts, "post1", golf_user, "좋아요")
        assert [p.model_dump() for p in posts] == snapshot


class TestCommentsAndReplies:

    def test_comment_records_admin_flag(self, posts, golf_user, admin_user):
        posts, post = community.add_comment(posts, "post1", golf_user, "저도 가고 싶어요")
        assert post.comments[-1].is_admin is False
        assert post.comments[-1].author == "골프왕"

        _, post = community.add_comment(posts, "post1", admin_user, "감사합니다")
        assert post.comments[-1].is_admin is True

    def test_empty_comment_rejected(self, posts, golf_user):
        with pytest.raises(ValidationError):
            community.add_comment(posts, "post1", golf_user, "   ")

    def test_admin_reply(self, posts, golf_user, admin_user):
        with pytest.raises(PermissionDeniedError):
            community.save_admin_reply(posts, "post2", golf_user, "답변")

        _, post = community.save_admin_reply(posts, "post2", admin_user, "견적 보내드렸습니다")
        assert post.admin_reply == "견적 보내드렸습니다"


class TestPublicView:

    def test_private_content_is_masked(self, posts):
        view = community.find_post(posts, "post2").public_view()

        assert "password" not in view
        assert view["content"] == ""
        assert view["isPrivate"] is True

    def test_public_post_keeps_content(self, posts):
        view = community.find_post(posts, "post1").public_view()
        assert view["content"]
        assert view["comments"]

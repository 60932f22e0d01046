"""
Community Board Rules
Pure functions over the post list. Every mutation returns a new list so the
controller can hand the result straight to the debounced sync.
"""

from typing import List, Optional, Tuple

from utils.errors import LoginRequiredError, NotFoundError, PermissionDeniedError, PostLockedError, ValidationError
from utils.helpers import new_id, today_str
from utils.models import Comment, CommunityPost, User

Posts = List[CommunityPost]


def find_post(posts: Posts, post_id: str) -> CommunityPost:
    for post in posts:
        if post.id == post_id:
            return post
    raise NotFoundError(f"Post '{post_id}' does not exist.")


def _replace(posts: Posts, updated: CommunityPost) -> Posts:
    return [updated if p.id == updated.id else p for p in posts]


def is_author(post: CommunityPost, user: Optional[User]) -> bool:
    """Authors are matched by nickname or username"""
    if user is None:
        return False
    return post.author in {user.nickname, user.username} - {None, ""}


def can_manage(post: CommunityPost, user: Optional[User]) -> bool:
    return user is not None and (user.is_admin or is_author(post, user))


def _require_login(user: Optional[User], message: str) -> User:
    if user is None:
        raise LoginRequiredError(message)
    return user


def _check_fields(title: Optional[str], content: Optional[str]):
    if not (title or "").strip() or not (content or "").strip():
        raise ValidationError("Title and content are required.")


def create_post(posts: Posts, user: Optional[User], title: str, content: str,
                image: Optional[str] = None, is_private: bool = False,
                password: Optional[str] = None) -> Tuple[Posts, CommunityPost]:
    """New posts go to the top of the board"""
    user = _require_login(user, "Log in to write a post.")
    _check_fields(title, content)
    if is_private and not (password or "").strip():
        raise ValidationError("Private posts need a password.")

    post = CommunityPost(
        id=new_id(),
        title=title.strip(),
        content=content,
        author=user.display_name,
        date=today_str(),
        image=image or None,
        comments=[],
        views=0,
        is_private=is_private,
        password=password if is_private else None,
    )
    return [post] + list(posts), post


def open_post(posts: Posts, post_id: str, user: Optional[User],
              password: Optional[str] = None) -> Tuple[Posts, CommunityPost]:
    """
    Read a post and count the view.

    Reading requires login. Private posts open without a password for admins
    and the author; everyone else must supply the matching password.
    Each successful open increments ``views`` by exactly one.
    """
    user = _require_login(user, "Log in to read posts and see their photos.")
    post = find_post(posts, post_id)

    if post.is_private and not can_manage(post, user):
        if password is None or password != post.password:
            raise PostLockedError()

    updated = post.model_copy(update={"views": post.views + 1})
    return _replace(posts, updated), updated


def edit_post(posts: Posts, post_id: str, user: Optional[User], title: str, content: str,
              image: Optional[str] = None, is_private: Optional[bool] = None,
              password: Optional[str] = None) -> Tuple[Posts, CommunityPost]:
    """
    Edit title/content (required) and optionally image and privacy.

    ``image=None`` keeps the current image, an empty string removes it.
    """
    user = _require_login(user, "Log in to edit posts.")
    post = find_post(posts, post_id)
    if not can_manage(post, user):
        raise PermissionDeniedError("Only the author or an administrator can edit this post.")
    _check_fields(title, content)

    changes = {"title": title.strip(), "content": content}
    if image is not None:
        changes["image"] = image or None
    if is_private is not None:
        new_password = password if password is not None else post.password
        if is_private and not (new_password or "").strip():
            raise ValidationError("Private posts need a password.")
        changes["is_private"] = is_private
        changes["password"] = new_password if is_private else None

    updated = post.model_copy(update=changes)
    return _replace(posts, updated), updated


def delete_post(posts: Posts, post_id: str, user: Optional[User]) -> Posts:
    user = _require_login(user, "Log in to delete posts.")
    post = find_post(posts, post_id)
    if not can_manage(post, user):
        raise PermissionDeniedError("Only the author or an administrator can delete this post.")
    return [p for p in posts if p.id != post_id]


def add_comment(posts: Posts, post_id: str, user: Optional[User], content: str) -> Tuple[Posts, CommunityPost]:
    user = _require_login(user, "Log in to comment.")
    if not (content or "").strip():
        raise ValidationError("The comment is empty.")
    post = find_post(posts, post_id)

    comment = Comment(
        id=new_id(),
        author=user.display_name,
        content=content.strip(),
        date=today_str(),
        is_admin=user.is_admin,
    )
    updated = post.model_copy(update={"comments": list(post.comments) + [comment]})
    return _replace(posts, updated), updated


def save_admin_reply(posts: Posts, post_id: str, user: Optional[User], reply: str) -> Tuple[Posts, CommunityPost]:
    if user is None or not user.is_admin:
        raise PermissionDeniedError("Only administrators can reply.")
    post = find_post(posts, post_id)
    updated = post.model_copy(update={"admin_reply": reply or None})
    return _replace(posts, updated), updated

import pytest

from uservibe.domain.models.subject import extract_username, parse_subject


@pytest.mark.parametrize(
    "href, text, expected",
    [
        ("https://www.reddit.com/user/Alice_99/", "Alice_99", "Alice_99"),
        ("https://old.reddit.com/user/bob", "u/bob", "bob"),
        ("http://www.reddit.com/user/Carol", None, "Carol"),
        ("https://www.reddit.com/user/dave/", "  DAVE  ", "dave"),
    ],
)
def test_extract_username_accepts_profile_links(href, text, expected):
    assert extract_username(href, text) == expected


@pytest.mark.parametrize(
    "href, text",
    [
        ("https://www.reddit.com/user/alice/comments/", "alice"),
        ("https://www.reddit.com/user/alice/?sort=new", "alice"),
        ("https://new.reddit.com/user/alice", "alice"),
        ("https://www.reddit.com/r/python", "python"),
        ("https://www.reddit.com/user/alice", "view profile"),
        ("", None),
    ],
)
def test_extract_username_rejects_other_links(href, text):
    assert extract_username(href, text) is None


@pytest.mark.parametrize(
    "reference, expected",
    [
        ("alice", "alice"),
        ("  alice  ", "alice"),
        ("u/alice", "alice"),
        ("/u/Alice", "Alice"),
        ("/user/alice/", "alice"),
        ("https://old.reddit.com/user/alice/", "alice"),
        ("some-user_1", "some-user_1"),
    ],
)
def test_parse_subject(reference, expected):
    assert parse_subject(reference) == expected


@pytest.mark.parametrize("reference", ["", "   ", "two words", "r/python", "a" * 33, "https://example.com/user/alice"])
def test_parse_subject_rejects(reference):
    assert parse_subject(reference) is None

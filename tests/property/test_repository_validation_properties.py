from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from batterybench.config import is_valid_repository

_URL_CHARS = st.characters(min_codepoint=33, max_codepoint=126)
_VALID_PREFIXES = st.sampled_from(["http://", "https://", "git@"])


@given(_VALID_PREFIXES, st.text(alphabet=_URL_CHARS, max_size=40))
def test_known_remote_prefixes_are_accepted(prefix: str, rest: str) -> None:
    assert is_valid_repository(prefix + rest)


@given(st.text(alphabet=_URL_CHARS, max_size=40))
def test_other_identifiers_are_rejected(value: str) -> None:
    accepted = value.startswith(("http://", "https://", "git@"))

    assert is_valid_repository(value) is accepted

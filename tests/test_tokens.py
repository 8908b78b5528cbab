import pytest

from coursehub.auth.tokens import ALPHABET, REMEMBER_TOKEN_LENGTH, generate_token


def test_default_length_is_30():
    assert REMEMBER_TOKEN_LENGTH == 30
    assert len(generate_token()) == 30


def test_alphabet_has_no_ambiguous_characters():
    for ch in "0O1lI":
        assert ch not in ALPHABET
    tok = generate_token(200)
    assert set(tok) <= set(ALPHABET)


def test_ten_thousand_tokens_do_not_collide():
    tokens = {generate_token() for _ in range(10_000)}
    assert len(tokens) == 10_000


def test_non_positive_length_rejected():
    with pytest.raises(ValueError):
        generate_token(0)

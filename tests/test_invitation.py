"""Invitation code generation and normalization."""

import random
import string

from familymenu.utils.invitation import (
    generate_invitation_code,
    is_valid_invitation_code_format,
    normalize_invitation_code,
)

ALNUM = string.ascii_letters + string.digits


def test_generated_codes_are_valid():
    for _ in range(200):
        code = generate_invitation_code()
        assert is_valid_invitation_code_format(code), code
        assert code == code.upper()
        assert len(code) == 7 and code[3] == "-"


def test_generated_codes_do_not_repeat():
    codes = {generate_invitation_code() for _ in range(1000)}
    # 36**6 possibilities; a repeat in 1000 draws is very unlikely
    assert len(codes) >= 999


def test_six_alnum_chars_get_a_dash():
    rng = random.Random(7)
    for _ in range(100):
        s = "".join(rng.choice(ALNUM) for _ in range(6))
        assert normalize_invitation_code(s) == f"{s[:3]}-{s[3:]}".upper()


def test_normalize_strips_whitespace_and_uppercases():
    assert normalize_invitation_code("  abc 123 ") == "ABC-123"
    assert normalize_invitation_code("\tab c-1 23\n") == "ABC-123"


def test_dashed_input_is_never_reformatted():
    assert normalize_invitation_code("abc-123") == "ABC-123"
    assert normalize_invitation_code("ab-c123") == "AB-C123"
    assert normalize_invitation_code("a-b") == "A-B"
    assert normalize_invitation_code("abcd-12345") == "ABCD-12345"


def test_wrong_length_passes_through():
    assert normalize_invitation_code("abc12") == "ABC12"
    assert normalize_invitation_code("abc1234") == "ABC1234"
    assert normalize_invitation_code("") == ""


def test_non_alnum_six_chars_pass_through():
    assert normalize_invitation_code("ab#123") == "AB#123"


def test_format_validation():
    assert is_valid_invitation_code_format("ABC-123")
    assert is_valid_invitation_code_format("abc123")
    assert is_valid_invitation_code_format(" x9z 0q1 ")
    assert not is_valid_invitation_code_format("AB-C123")
    assert not is_valid_invitation_code_format("ABC-1234")
    assert not is_valid_invitation_code_format("ABC12")
    assert not is_valid_invitation_code_format("ÁBC-123")
    assert not is_valid_invitation_code_format("")

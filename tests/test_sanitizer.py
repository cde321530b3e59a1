from utils.sanitizer import sanitize_filename, sanitize_input, strip_html
from utils.validation_utils import validate_choice_field, validate_username, validate_zip


def test_sanitize_input_escapes_markup():
    assert sanitize_input("<b>hi</b>") == "&lt;b&gt;hi&lt;/b&gt;"
    assert sanitize_input("plain text") == "plain text"
    assert sanitize_input(42) == 42
    assert sanitize_input("") == ""


def test_strip_html():
    assert strip_html("<b>bold</b> move") == "bold move"


def test_sanitize_filename():
    assert sanitize_filename("../../etc/passwd") == "passwd"
    assert sanitize_filename("my report (final).pdf") == "my_report__final_.pdf"
    assert sanitize_filename("C:\\Users\\me\\cv.pdf") == "cv.pdf"
    assert sanitize_filename(".hidden") == "hidden"
    assert sanitize_filename("") == "file"


def test_validate_zip_and_username():
    assert validate_zip("63017")
    assert not validate_zip("6301")
    assert not validate_zip("abcde")
    assert validate_username("ada.l_1")
    assert not validate_username("a")
    assert not validate_username("has space")


def test_validate_choice_field():
    assert validate_choice_field("gender", "Male") == (True, {"value": "Male", "custom": None})
    assert validate_choice_field("gender", {"value": "Other", "custom": " Agender "}) == (
        True, {"value": "Other", "custom": "Agender"}
    )
    assert validate_choice_field("gender", "Robot") == (False, None)
    assert validate_choice_field("institution", {"value": "WashU", "custom": "x"}) == (
        True, {"value": "WashU", "custom": "x"}
    )
    assert validate_choice_field("gender", None) == (True, {"value": None, "custom": None})

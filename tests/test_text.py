from rentaldocs.text import html_to_lines, html_to_text


def test_block_tags_become_lines():
    assert html_to_lines("<p>Payment in 30 days</p><p>Fuel not included</p>") == [
        "Payment in 30 days",
        "Fuel not included",
    ]


def test_br_and_div():
    assert html_to_lines("One<br>Two<br/>Three<div>Four</div>") == ["One", "Two", "Three", "Four"]


def test_inline_tags_stripped_and_entities_unescaped():
    assert html_to_text("<strong>Net</strong> &amp; <em>gross</em>") == "Net & gross"


def test_blank_lines_dropped():
    assert html_to_lines("<p> </p><p>Only line</p>\n\n") == ["Only line"]


def test_none_is_empty():
    assert html_to_lines(None) == []
    assert html_to_text("") == ""


def test_plain_text_passes_through():
    assert html_to_lines("Line one\nLine two") == ["Line one", "Line two"]

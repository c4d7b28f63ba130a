import pytest

from rancher_tools.quantity import Quantity, QuantityFormat, quantity_max


@pytest.mark.parametrize(
    "text", ["100m", "128Mi", "2Gi", "1500m", "3", "500Mi", "1k", "250u", "1e3", "1G"]
)
def test_canonical_text_round_trips(text):
    assert str(Quantity.parse(text)) == text


@pytest.mark.parametrize(
    "left, right",
    [("2k", "2000"), ("1Ki", "1024"), ("0.5", "500m"), ("1e3", "1k"), ("1Mi", "1024Ki")],
)
def test_equivalent_spellings_are_equal(left, right):
    assert Quantity.parse(left) == Quantity.parse(right)
    assert hash(Quantity.parse(left)) == hash(Quantity.parse(right))


def test_parse_formats_follow_suffix():
    assert Quantity.parse("1Gi").format is QuantityFormat.BINARY_SI
    assert Quantity.parse("1G").format is QuantityFormat.DECIMAL_SI
    assert Quantity.parse("1e6").format is QuantityFormat.DECIMAL_EXPONENT


def test_parse_accepts_numbers():
    assert Quantity.parse(2) == Quantity.parse("2")
    assert Quantity.parse(0.25) == Quantity.parse("250m")


def test_sub_nano_precision_rounds_up():
    assert Quantity.parse("0.1n") == Quantity.parse("1n")
    assert Quantity.parse("-0.1n") == Quantity.parse("-1n")


def test_addition_sums_values():
    total = Quantity.parse("100m") + Quantity.parse("200m")
    assert total == Quantity.parse("300m")


def test_zero_renders_as_zero():
    for fmt in QuantityFormat:
        assert str(Quantity.zero(fmt)) == "0"


def test_zero_adopts_format_of_addend():
    total = Quantity.zero(QuantityFormat.BINARY_SI) + Quantity.parse("1G")
    assert total.format is QuantityFormat.DECIMAL_SI
    assert str(total) == "1G"


def test_nonzero_keeps_its_format():
    total = Quantity.parse("1Gi") + Quantity.parse("1Gi")
    assert total.format is QuantityFormat.BINARY_SI
    assert total == Quantity.parse("2Gi")
    assert str(total) == "2Gi"


def test_binary_quantity_renders_with_binary_suffix():
    assert str(Quantity.parse("1024Ki")) == "1Mi"


def test_small_binary_quantity_falls_back_to_decimal():
    assert str(Quantity.parse("0.5Ki")) == str(Quantity.parse("512"))


def test_ordering():
    assert Quantity.parse("999m") < Quantity.parse("1")
    assert Quantity.parse("1Gi") > Quantity.parse("1G")
    assert Quantity.parse("1000m") <= Quantity.parse("1")


def test_quantity_max_prefers_first_on_tie():
    a = Quantity.parse("1")
    b = Quantity.parse("1000m")
    assert quantity_max(a, b) is a


def test_quantity_max_picks_larger():
    a = Quantity.parse("1")
    b = Quantity.parse("2Gi")
    assert quantity_max(a, b) is b
    assert quantity_max(b, a) is b


@pytest.mark.parametrize("text", ["", "abc", "1Xi", "1.2.3", "--1", " 1", "1 "])
def test_invalid_quantities_raise(text):
    with pytest.raises(ValueError):
        Quantity.parse(text)


def test_adding_non_quantity_raises():
    with pytest.raises(TypeError):
        Quantity.parse("1") + 1
"""
Tests for the receipt text parser. Pure text processing, no external services.
"""
import itertools
import pytest

from haulcalc.services.receipt_parser import (
    ExtractedFields,
    extract_products,
    find_anchors,
    normalize_text,
    parse_number,
)


FIELDS = ["Freight: ¥3.00", "Quantity: 2", "Weight: 45g"]


def _events():
    events = []
    return events, lambda event, data: events.append((event, data))


# ── No anchors ───────────────────────────────────────────────────────────────

class TestNothingToExtract:

    @pytest.mark.parametrize("text", [
        "",
        "   \n\t  ",
        "ORDER #88812 shipped 45g ¥12.50",
        "Freight: ¥3.00 Quantity: 2 Weight: 45g",
        "Price: ¥",
        "Price: ¥abc",
        "@@@ ### !!!",
    ])
    def test_returns_empty_list(self, text):
        assert extract_products(text) == []

    def test_none_input_returns_empty_list(self):
        assert extract_products(None) == []

    def test_no_anchor_trace_event(self):
        events, trace = _events()
        extract_products("just noise", trace=trace)
        assert [e for e, _ in events] == ["no_anchors"]


# ── Single product ───────────────────────────────────────────────────────────

class TestSingleProduct:

    def test_all_fields(self):
        text = "Price: ¥12.50\nFreight: ¥3.00\nQuantity: 2\nWeight: 45g"
        assert extract_products(text) == [
            ExtractedFields(price=12.5, freight=3.0, quantity=2, weight_g=45.0)
        ]

    @pytest.mark.parametrize("order", list(itertools.permutations(FIELDS)))
    def test_fields_in_any_order(self, order):
        text = "Price: ¥12.50 " + " ".join(order)
        [product] = extract_products(text)
        assert product.price == 12.5
        assert product.freight == 3.0
        assert product.quantity == 2
        assert product.weight_g == 45.0

    def test_name_is_always_empty(self):
        text = "Stainless steel coffee tamper 58mm\nPrice: ¥12.50 Freight: ¥3.00"
        [product] = extract_products(text)
        assert product.name == ""

    def test_missing_freight_defaults_to_zero(self):
        [product] = extract_products("Price: ¥12.50 Quantity: 2 Weight: 45g")
        assert product.freight == 0.0
        assert product.quantity == 2

    def test_missing_quantity_defaults_to_one(self):
        [product] = extract_products("Price: ¥12.50 Freight: ¥3.00")
        assert product.quantity == 1

    def test_missing_weight_defaults_to_zero(self):
        [product] = extract_products("Price: ¥12.50 Freight: ¥3.00")
        assert product.weight_g == 0.0

    def test_labels_split_across_lines(self):
        text = "Price:\n  ¥12.50\nFreight:\n\n ¥3.00\nQuantity:\n2"
        [product] = extract_products(text)
        assert (product.price, product.freight, product.quantity) == (12.5, 3.0, 2)

    def test_spanish_labels_and_decimal_comma(self):
        text = "Precio: ¥12,50 Envío: ¥3,00 Cantidad: 2 Peso: 45 g"
        assert extract_products(text) == [
            ExtractedFields(price=12.5, freight=3.0, quantity=2, weight_g=45.0)
        ]

    def test_case_insensitive_labels(self):
        [product] = extract_products("PRICE: ¥7.00 FREIGHT: ¥1.50 QTY: 3")
        assert (product.price, product.freight, product.quantity) == (7.0, 1.5, 3)

    def test_price_without_currency_glyph(self):
        [product] = extract_products("Price: 18.80")
        assert product.price == 18.8

    def test_thousands_separator(self):
        [product] = extract_products("Price: ¥1,299.00")
        assert product.price == 1299.0


# ── Price anchor bounds ──────────────────────────────────────────────────────

class TestPriceBounds:

    @pytest.mark.parametrize("raw", ["10000", "10000.00", "0", "0.00", "25000"])
    def test_rejected(self, raw):
        assert extract_products(f"Price: ¥{raw} Freight: ¥3.00") == []

    @pytest.mark.parametrize("raw,expected", [
        ("9999.99", 9999.99),
        ("0.01", 0.01),
        ("1", 1.0),
    ])
    def test_accepted(self, raw, expected):
        [product] = extract_products(f"Price: ¥{raw}")
        assert product.price == expected

    def test_rejected_anchor_is_traced(self):
        events, trace = _events()
        extract_products("Price: ¥0", trace=trace)
        assert ("anchor_rejected", {"offset": 0, "raw": "0"}) in events

    def test_shipping_price_is_not_an_anchor(self):
        [product] = extract_products("Price: ¥10.00 Shipping price: ¥4.00")
        assert product.price == 10.0
        assert product.freight == 4.0

    def test_total_price_is_not_an_anchor(self):
        products = extract_products("Price: ¥10.00 Quantity: 2 Total price: ¥20.00")
        assert len(products) == 1


# ── Freight ──────────────────────────────────────────────────────────────────

class TestFreight:

    def test_zero_freight_is_valid(self):
        [product] = extract_products("Price: ¥8.00 Freight: ¥0.00 Quantity: 1")
        assert product.freight == 0.0

    def test_found_zero_and_missing_are_traced_differently(self):
        found, trace_found = _events()
        extract_products("Price: ¥8.00 Freight: ¥0", trace=trace_found)
        missing, trace_missing = _events()
        extract_products("Price: ¥8.00", trace=trace_missing)

        assert any(e == "field" and d["field"] == "freight" and d["value"] == 0.0 for e, d in found)
        assert any(e == "field_missing" and d["field"] == "freight" for e, d in missing)
        assert not any(e == "field_missing" and d["field"] == "freight" for e, d in found)

    @pytest.mark.parametrize("label", ["Freight", "Frelght", "Frei", "Freig", "Freigh", "Shipping fee", "Flete"])
    def test_ocr_label_variants(self, label):
        [product] = extract_products(f"Price: ¥8.00 {label}: ¥2.50")
        assert product.freight == 2.5

    def test_out_of_range_freight_ignored(self):
        [product] = extract_products("Price: ¥8.00 Freight: ¥12000")
        assert product.freight == 0.0


# ── Quantity ─────────────────────────────────────────────────────────────────

class TestQuantity:

    @pytest.mark.parametrize("label", ["Quantity:", "Quan:", "Quant:", "Qty", "Quy:", "Qnty:", "Cantidad:"])
    def test_truncated_labels(self, label):
        [product] = extract_products(f"Price: ¥15.00 {label} 3")
        assert product.quantity == 3

    @pytest.mark.parametrize("raw", ["0", "1000", "5000"])
    def test_out_of_range_defaults_to_one(self, raw):
        [product] = extract_products(f"Price: ¥15.00 Quantity: {raw}")
        assert product.quantity == 1

    def test_upper_bound_accepted(self):
        [product] = extract_products("Price: ¥15.00 Quantity: 999")
        assert product.quantity == 999

    def test_nearest_candidate_wins(self):
        [product] = extract_products("Price: ¥9.90 Quantity: 3 Colour: red Quantity: 7")
        assert product.quantity == 3

    def test_out_of_range_candidate_skipped_for_next_valid(self):
        [product] = extract_products("Price: ¥9.90 Quantity: 0 Quantity: 4")
        assert product.quantity == 4


# ── Weight ───────────────────────────────────────────────────────────────────

class TestWeight:

    def test_bare_grams_when_no_label(self):
        [product] = extract_products("Price: ¥5.00 Net 250 g")
        assert product.weight_g == 250.0

    def test_labelled_weight_preferred_over_bare(self):
        [product] = extract_products("Price: ¥9.90 Pack 500g Weight: 120g")
        assert product.weight_g == 120.0

    @pytest.mark.parametrize("text", [
        "Price: ¥5.00 Weight: 100000g",
        "Price: ¥5.00 Weight: 0g",
        "Price: ¥5.00 Weight: 2kg",
        "Price: ¥5.00 Storage 64GB",
    ])
    def test_invalid_or_non_gram_weights_ignored(self, text):
        [product] = extract_products(text)
        assert product.weight_g == 0.0

    def test_decimal_grams(self):
        [product] = extract_products("Price: ¥5.00 Weight: 12.5 grams")
        assert product.weight_g == 12.5

    def test_bare_weight_just_before_next_product_belongs_to_it(self):
        text = (
            "Price: ¥30.00 Freight: ¥2.00 Seller: Shop A. Colour: black. Size: M. "
            "Ships in 3 days. Steel mug 500g Price: ¥18.00 Weight: 80g"
        )
        first, second = extract_products(text)
        assert first.weight_g == 0.0
        assert second.weight_g == 80.0


# ── Multiple products ────────────────────────────────────────────────────────

class TestMultipleProducts:

    def test_anchor_order_preserved(self):
        text = (
            "Price: ¥20.00 Freight: ¥5.00 Quantity: 1 Weight: 300g\n"
            "Blue hoodie XL\n"
            "Price: ¥12.50 Freight: ¥3.00 Quantity: 2 Weight: 45g"
        )
        assert extract_products(text) == [
            ExtractedFields(price=20.0, freight=5.0, quantity=1, weight_g=300.0),
            ExtractedFields(price=12.5, freight=3.0, quantity=2, weight_g=45.0),
        ]

    def test_fields_do_not_leak_between_products(self):
        text = "Price: ¥20.00 Quantity: 4 Price: ¥12.50 Freight: ¥3.00"
        first, second = extract_products(text)
        assert first.freight == 0.0
        assert first.quantity == 4
        assert second.quantity == 1
        assert second.freight == 3.0

    def test_repeated_block_yields_one_record(self):
        block = "Price: ¥12.50 Freight: ¥3.00 Quantity: 2 Weight: 45g"
        products = extract_products(f"{block}\n{block}")
        assert products == [ExtractedFields(price=12.5, freight=3.0, quantity=2, weight_g=45.0)]

    def test_duplicate_is_traced(self):
        events, trace = _events()
        block = "Price: ¥12.50 Freight: ¥3.00"
        extract_products(f"{block} {block}", trace=trace)
        assert sum(1 for e, _ in events if e == "duplicate") == 1

    def test_same_price_different_quantity_kept(self):
        products = extract_products("Price: ¥12.50 Quantity: 1 Price: ¥12.50 Quantity: 2")
        assert [p.quantity for p in products] == [1, 2]

    def test_last_window_lookahead_is_bounded(self):
        text = "Price: ¥12.50 " + "x" * 900 + " Quantity: 5"
        [product] = extract_products(text)
        assert product.quantity == 1


# ── Helpers ──────────────────────────────────────────────────────────────────

class TestHelpers:

    def test_normalize_text_collapses_whitespace(self):
        assert normalize_text("  Price:\n\n ¥1 \t x ") == "Price: ¥1 x"

    @pytest.mark.parametrize("raw,expected", [
        ("12.50", 12.5),
        ("12,50", 12.5),
        ("1,299.00", 1299.0),
        ("7", 7.0),
    ])
    def test_parse_number(self, raw, expected):
        assert parse_number(raw) == expected

    def test_find_anchors_sorted_with_offsets(self):
        text = "a Price: ¥1.00 b Price: ¥2.00"
        anchors = find_anchors(text)
        assert [a.price for a in anchors] == [1.0, 2.0]
        assert anchors[0].start == 2
        assert anchors[0].start < anchors[1].start

    def test_no_output_without_trace(self, capsys):
        extract_products("Price: ¥12.50 Freight: ¥3.00")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == ""

    def test_deterministic(self):
        text = "Price: ¥20.00 Quantity: 4 Price: ¥12.50 Freight: ¥3.00 Weight: 45g"
        assert extract_products(text) == extract_products(text)


# ── Labels glued to the previous value ───────────────────────────────────────

class TestGluedLabels:

    def test_fields_glued_without_spaces(self):
        text = "Price:¥12.50Freight:¥3.00Quantity:2Weight:45g"
        assert extract_products(text) == [
            ExtractedFields(price=12.5, freight=3.0, quantity=2, weight_g=45.0)
        ]

    def test_label_glued_to_currency_value(self):
        [product] = extract_products("Price: ¥12.50 Freight: ¥3.00Qty:4")
        assert product.freight == 3.0
        assert product.quantity == 4

    @pytest.mark.parametrize("label", ["UnitPrice:", "Unit Price:", "unit price"])
    def test_unit_price_label(self, label):
        [product] = extract_products(f"{label} ¥12.50 Freight: ¥3.00")
        assert product.price == 12.5
        assert product.freight == 3.0

    def test_label_inside_a_word_is_ignored(self):
        [product] = extract_products("Price: ¥10.00 Significant 5")
        assert product.quantity == 1

    def test_price_glued_to_a_word_is_not_an_anchor(self):
        products = extract_products("Price: ¥10.00 ShippingPrice: ¥4.00")
        assert [p.price for p in products] == [10.0]

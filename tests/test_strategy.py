import json
import logging

import pytest

from licscan.core.errors import EngineError
from licscan.core.store import LicenseKind, Store
from licscan.core.strategy import ContainedResult, IdentifiedLicense, ScanResult, ScanStrategy
from licscan.core.text import TextData

# Matches license-2 with a low overall score; lines 2-6 hold license-2 verbatim.
EMBEDDED_ONE = (
    "lorem\nipsum abc def ghi jkl\n1234 5678 1234\n0000\n1010101010\n\n8888 9999\n"
    "whatsit hello\narst neio qwfp colemak is the best keyboard layout"
)
EMBEDDED_TWO = EMBEDDED_ONE + "\naaaaa\nbbbbb\nccccc"

LICENSE_ONE = "aaaaa\nbbbbb\nccccc"
LICENSE_TWO = "1234 5678 1234\n0000\n1010101010\n\n8888 9999"


def _dummy_store() -> Store:
    store = Store()
    store.add_license("license-1", LICENSE_ONE)
    store.add_license("license-2", LICENSE_TWO)
    return store


class _FailingStore(Store):
    """Store whose analyze raises after ``ok_calls`` successful calls."""

    def __init__(self, ok_calls: int) -> None:
        super().__init__()
        self.ok_calls = ok_calls
        self.calls = 0

    def analyze(self, text):
        self.calls += 1
        if self.calls > self.ok_calls:
            raise EngineError("corpus fault")
        return super().analyze(text)


def test_can_construct_with_defaults():
    store = Store()
    strategy = ScanStrategy(store)
    assert strategy.store is store
    assert strategy.confidence_threshold == pytest.approx(0.8)
    assert strategy.shallow_limit == pytest.approx(0.99)
    assert strategy.optimize is False
    assert strategy.max_passes == 10


def test_fluent_setters_return_new_strategies():
    base = ScanStrategy(Store())
    tuned = base.with_confidence_threshold(0.5).with_shallow_limit(0.9).with_optimize(True).with_max_passes(100)

    assert tuned is not base
    assert base.confidence_threshold == pytest.approx(0.8)
    assert base.optimize is False
    assert tuned.confidence_threshold == pytest.approx(0.5)
    assert tuned.shallow_limit == pytest.approx(0.9)
    assert tuned.optimize is True
    assert tuned.max_passes == 100


def test_setters_do_not_validate():
    strategy = ScanStrategy(Store()).with_confidence_threshold(0.9).with_shallow_limit(0.1)
    assert strategy.shallow_limit < strategy.confidence_threshold


def test_building_a_strategy_never_touches_the_store():
    store = _FailingStore(ok_calls=0)
    ScanStrategy(store).with_optimize(True).with_max_passes(3)
    assert store.calls == 0


def test_shallow_scan():
    store = _dummy_store()
    text = TextData("lorem ipsum\naaaaa bbbbb\nccccc\nhello")

    result = ScanStrategy(store).with_confidence_threshold(0.5).with_shallow_limit(0.0).scan(text)
    assert result.score > 0.5
    assert result.license is not None
    assert result.license.name == "license-1"

    result = ScanStrategy(store).with_confidence_threshold(0.8).with_shallow_limit(0.0).scan(text)
    assert result.license is None


def test_scan_accepts_plain_strings():
    store = _dummy_store()
    result = ScanStrategy(store).scan("aaaaa\nbbbbb\nccccc")
    assert result.score == pytest.approx(1.0)
    assert result.license == IdentifiedLicense("license-1", LicenseKind.ORIGINAL)


def test_single_optimize():
    strategy = (
        ScanStrategy(_dummy_store())
        .with_confidence_threshold(0.5)
        .with_optimize(True)
        .with_shallow_limit(1.0)
    )

    result = strategy.scan(TextData(EMBEDDED_ONE))

    assert result.license is None
    assert len(result.containing) == 1
    contained = result.containing[0]
    assert contained.license.name == "license-2"
    assert contained.score > 0.5
    assert contained.line_range == (2, 6)


def test_find_multiple_licenses():
    strategy = (
        ScanStrategy(_dummy_store())
        .with_confidence_threshold(0.5)
        .with_optimize(True)
        .with_shallow_limit(1.0)
    )

    result = strategy.scan(TextData(EMBEDDED_TWO))

    assert result.license is None
    assert len(result.containing) == 2
    names = [c.license.name for c in result.containing]
    assert sorted(names) == ["license-1", "license-2"]
    for contained in result.containing:
        assert contained.score > 0.5


def test_discovery_order_and_line_ranges_use_input_numbering():
    strategy = ScanStrategy(_dummy_store()).with_confidence_threshold(0.5).with_optimize(True)

    result = strategy.scan(EMBEDDED_TWO)

    assert [(c.license.name, c.line_range) for c in result.containing] == [
        ("license-2", (2, 6)),
        ("license-1", (9, 11)),
    ]


def test_no_duplicate_line_ranges():
    strategy = ScanStrategy(_dummy_store()).with_confidence_threshold(0.5).with_optimize(True)
    result = strategy.scan(EMBEDDED_TWO)
    ranges = [c.line_range for c in result.containing]
    assert len(ranges) == len(set(ranges))


CONCATENATED_LAYOUTS = [
    pytest.param(
        "lorem ipsum dolor\n" + LICENSE_ONE + "\n" + LICENSE_TWO + "\nfoo bar baz qux",
        [("license-2", (4, 8)), ("license-1", (1, 3))],
        id="first-license-before-masked-block",
    ),
    pytest.param(
        LICENSE_ONE + "\n" + LICENSE_TWO + "\nfoo bar baz qux",
        [("license-2", (3, 7)), ("license-1", (0, 2))],
        id="first-license-at-top",
    ),
    pytest.param(
        "lorem ipsum dolor\n" + LICENSE_TWO + "\n" + LICENSE_ONE + "\nfoo bar baz qux",
        [("license-2", (1, 5)), ("license-1", (6, 8))],
        id="second-license-after-masked-block",
    ),
    pytest.param(
        "lorem ipsum dolor sit\n" + LICENSE_ONE + "\n\n\n\nfoo bar baz qux",
        [("license-1", (1, 3))],
        id="trailing-blank-lines",
    ),
]


@pytest.mark.parametrize("text, expected", CONCATENATED_LAYOUTS)
def test_concatenated_licenses_are_each_found(text, expected):
    strategy = (
        ScanStrategy(_dummy_store())
        .with_confidence_threshold(0.5)
        .with_optimize(True)
        .with_shallow_limit(1.0)
    )

    result = strategy.scan(text)

    assert [(c.license.name, c.line_range) for c in result.containing] == expected


@pytest.mark.parametrize("text", [p.values[0] for p in CONCATENATED_LAYOUTS] + [EMBEDDED_TWO])
def test_contained_ranges_are_disjoint(text):
    strategy = ScanStrategy(_dummy_store()).with_confidence_threshold(0.5).with_optimize(True)

    ranges = sorted(c.line_range for c in strategy.scan(text).containing)

    for (_, prev_last), (next_first, _) in zip(ranges, ranges[1:]):
        assert prev_last < next_first


def test_negative_threshold_stops_when_nothing_matches():
    strategy = ScanStrategy(_dummy_store()).with_confidence_threshold(-1.0).with_optimize(True)

    result = strategy.scan(EMBEDDED_ONE)

    assert [(c.license.name, c.line_range) for c in result.containing] == [("license-2", (2, 6))]


def test_shallow_limit_skips_search_even_with_optimize():
    strategy = ScanStrategy(_dummy_store()).with_optimize(True)

    result = strategy.scan("aaaaa\nbbbbb\nccccc")

    assert result.score > strategy.shallow_limit
    assert result.license is not None
    assert result.license.name == "license-1"
    assert result.containing == ()


def test_shallow_limit_below_threshold_exits_after_identification():
    store = _dummy_store()
    strategy = (
        ScanStrategy(store)
        .with_confidence_threshold(0.5)
        .with_shallow_limit(0.1)
        .with_optimize(True)
    )

    result = strategy.scan("lorem ipsum\naaaaa bbbbb\nccccc\nhello")

    assert result.license is not None
    assert result.containing == ()


def test_optimize_disabled_leaves_containing_empty():
    strategy = ScanStrategy(_dummy_store()).with_confidence_threshold(0.5).with_shallow_limit(1.0)
    result = strategy.scan(EMBEDDED_TWO)
    assert result.license is None
    assert result.containing == ()


@pytest.mark.parametrize("max_passes, expected", [(0, 0), (1, 1), (2, 2), (3, 2), (10, 2)])
def test_containing_is_bounded_and_monotonic_in_passes(max_passes, expected):
    strategy = (
        ScanStrategy(_dummy_store())
        .with_confidence_threshold(0.5)
        .with_optimize(True)
        .with_max_passes(max_passes)
    )
    result = strategy.scan(EMBEDDED_TWO)
    assert len(result.containing) == expected
    assert len(result.containing) <= max_passes


def test_whole_document_fields_come_from_first_pass():
    store = _dummy_store()
    text = TextData(EMBEDDED_TWO)
    initial = store.analyze(text)

    result = ScanStrategy(store).with_confidence_threshold(0.5).with_optimize(True).scan(text)

    assert result.score == pytest.approx(initial.score)
    assert 0.0 <= result.score <= 1.0


def test_scan_is_repeatable():
    strategy = ScanStrategy(_dummy_store()).with_confidence_threshold(0.5).with_optimize(True)
    text = TextData(EMBEDDED_TWO)
    assert strategy.scan(text) == strategy.scan(text)


def test_scan_does_not_mutate_input_text():
    text = TextData(EMBEDDED_TWO)
    lines_before = text.lines_normalized
    view_before = text.view

    ScanStrategy(_dummy_store()).with_confidence_threshold(0.5).with_optimize(True).scan(text)

    assert text.lines_normalized == lines_before
    assert text.view == view_before


def test_kind_is_forwarded_from_the_matched_variant():
    store = Store()
    store.add_license("Demo-1.0", "the full demo license text goes here and is quite long indeed")
    store.add_variant("Demo-1.0", LicenseKind.HEADER, "licensed under the demo license version one")

    result = ScanStrategy(store).scan("licensed under the demo license version one")

    assert result.license == IdentifiedLicense("Demo-1.0", LicenseKind.HEADER)


def test_engine_error_in_first_classification_propagates():
    with pytest.raises(EngineError):
        ScanStrategy(Store()).scan("anything at all")


def test_engine_error_during_reclassification_fails_whole_scan():
    store = _FailingStore(ok_calls=1)
    store.add_license("license-1", LICENSE_ONE)
    store.add_license("license-2", LICENSE_TWO)
    strategy = ScanStrategy(store).with_confidence_threshold(0.5).with_optimize(True)

    with pytest.raises(EngineError, match="corpus fault"):
        strategy.scan(EMBEDDED_TWO)
    assert store.calls == 2


def test_mask_failure_is_a_contract_breach(monkeypatch):
    monkeypatch.setattr(TextData, "white_out", lambda self: None)
    strategy = ScanStrategy(_dummy_store()).with_confidence_threshold(0.5).with_optimize(True)

    with pytest.raises(AssertionError):
        strategy.scan(EMBEDDED_ONE)


def test_result_serializes_to_json():
    strategy = ScanStrategy(_dummy_store()).with_confidence_threshold(0.5).with_optimize(True)
    result = strategy.scan(EMBEDDED_TWO)

    doc = json.loads(json.dumps(result.to_dict()))

    assert set(doc) == {"score", "license", "containing"}
    assert doc["license"] is None
    assert doc["containing"][0] == {
        "score": pytest.approx(result.containing[0].score),
        "license": {"name": "license-2", "kind": "original"},
        "line_range": [2, 6],
    }


def test_result_types_are_immutable():
    result = ScanResult(score=0.5, license=None)
    contained = ContainedResult(0.9, IdentifiedLicense("x", LicenseKind.ORIGINAL), (0, 1))
    with pytest.raises(AttributeError):
        result.score = 1.0  # type: ignore[misc]
    with pytest.raises(AttributeError):
        contained.line_range = (2, 3)  # type: ignore[misc]


def test_scan_logs_each_pass_at_debug(caplog):
    strategy = ScanStrategy(_dummy_store()).with_confidence_threshold(0.5).with_optimize(True)

    with caplog.at_level(logging.DEBUG, logger="licscan.core.strategy"):
        strategy.scan(EMBEDDED_TWO)

    messages = [rec.getMessage() for rec in caplog.records]
    assert any("found license-2 at lines 2-6" in m for m in messages)
    assert any("found license-1 at lines 9-11" in m for m in messages)

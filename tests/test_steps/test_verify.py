"""
検証ステップハンドラのテスト

各検証ハンドラが状態を読み取って期待値と比較し、
不一致を VerificationMismatch として送出することを検証する。
順序付き部分一致の比較関数は Hypothesis で性質を確認する。
"""

from __future__ import annotations

import asyncio

import pytest
from hypothesis import given
from hypothesis import strategies as st

from sjr.core.errors import PageTimeoutError, VerificationMismatch
from sjr.core.page import ElementState
from sjr.dsl.schema import (
    VerifyCheckedStep,
    VerifyCollectionCountStep,
    VerifyDropdownValueStep,
    VerifyOrderedTextsStep,
    VerifyTextMatchesStep,
)
from sjr.steps.registry import StepContext
from sjr.steps.verify import (
    VerifyCheckedHandler,
    VerifyCollectionCountHandler,
    VerifyDropdownValueHandler,
    VerifyOrderedTextsHandler,
    VerifyTextMatchesHandler,
    compare_ordered_texts,
)

HISTORY = ("javascript, コンピュータ・IT", "コンピュータ・IT", "ビジネス・経済")

# 空白・制御文字を含まない短い文字列（前後の空白除去の影響を受けない）
words = st.text(
    alphabet=st.characters(blacklist_categories=("Cs", "Cc", "Zs", "Zl", "Zp")),
    min_size=1,
    max_size=12,
)


@pytest.fixture(scope="module")
def ctx(suite_config) -> StepContext:
    return StepContext(config=suite_config)


def _run(handler, page, step, ctx):
    asyncio.run(handler.execute(page, step, ctx))


# ===========================================================================
# compare_ordered_texts
# ===========================================================================

class TestCompareOrderedTexts:
    """順序付き部分一致の比較関数のテスト。"""

    def test_history_in_expected_order(self):
        actual = ("javascript, コンピュータ・IT 本", "コンピュータ・IT 本", "ビジネス・経済 本")
        assert compare_ordered_texts(HISTORY, actual) == ([], None)

    def test_history_appended_instead_of_prepended(self):
        """新しい履歴が末尾に追加された場合は位置 0 から不一致になる。"""
        actual = ("ビジネス・経済", "コンピュータ・IT", "javascript, コンピュータ・IT")
        problems, index = compare_ordered_texts(HISTORY, actual)
        assert index == 0
        assert len(problems) == 2

    def test_length_difference_only(self):
        problems, index = compare_ordered_texts(HISTORY, HISTORY[:2])
        assert index == 2
        assert problems == ["件数が異なります（期待: 3 件, 実際: 2 件）"]

    def test_collects_all_problems(self):
        problems, index = compare_ordered_texts(("a", "b", "c"), ("a", "x", "y", "z"))
        assert index == 1
        assert len(problems) == 3

    @given(st.lists(st.tuples(words, words, words), min_size=1, max_size=6))
    def test_embedded_substrings_always_match(self, rows):
        """各位置のテキストが期待する部分文字列を含めば、常に一致となる。"""
        expected = [mid for _, mid, _ in rows]
        actual = [f"{head}{mid}{tail}" for head, mid, tail in rows]
        assert compare_ordered_texts(expected, actual) == ([], None)

    @given(st.lists(words, min_size=1, max_size=6), st.integers(min_value=0, max_value=5))
    def test_rotation_detected(self, expected, shift):
        """並べ替えで位置がずれた場合、期待列が回転不変でない限り不一致となる。"""
        shift = shift % len(expected)
        actual = expected[shift:] + expected[:shift]
        problems, index = compare_ordered_texts(expected, actual)
        if all(want in got for want, got in zip(expected, actual)):
            assert problems == []
        else:
            assert index is not None
            assert expected[index] not in actual[index]

    @given(st.lists(words, min_size=1, max_size=6), st.lists(words, max_size=6))
    def test_length_mismatch_never_passes(self, expected, actual):
        if len(expected) != len(actual):
            problems, index = compare_ordered_texts(expected, actual)
            assert problems
            assert index is not None
            assert index <= min(len(expected), len(actual))


# ===========================================================================
# 検証ハンドラ
# ===========================================================================

class TestVerifyDropdownValue:
    """verifyDropdownValue ハンドラのテスト。"""

    def test_match(self, make_page, ctx):
        page = make_page(states={"#cat2": ElementState(value="72", count=1)})
        step = VerifyDropdownValueStep(
            verifyDropdownValue="dropdownSecondSelection", expectedValue="72", label="本",
        )
        _run(VerifyDropdownValueHandler(), page, step, ctx)
        assert page.calls == [("wait_for", "#cat2", 30000), ("read", "#cat2")]

    def test_mismatch(self, make_page, ctx):
        page = make_page(states={"#cat2": ElementState(value="99", count=1)})
        step = VerifyDropdownValueStep(
            verifyDropdownValue="dropdownSecondSelection", expectedValue="72", label="本",
        )
        with pytest.raises(VerificationMismatch) as exc_info:
            _run(VerifyDropdownValueHandler(), page, step, ctx)
        assert exc_info.value.expected == "72"
        assert exc_info.value.actual == "99"

    def test_wait_timeout_is_not_mismatch(self, make_page, ctx):
        """要素が現れない場合は不一致ではなくタイムアウトになる。"""
        page = make_page(failures={"wait_for": PageTimeoutError("出現せず")})
        step = VerifyDropdownValueStep(
            verifyDropdownValue="dropdownFirstSelection", expectedValue="5", label="本",
        )
        with pytest.raises(PageTimeoutError):
            _run(VerifyDropdownValueHandler(), page, step, ctx)
        assert "read" not in page.methods


class TestVerifyChecked:
    """verifyChecked ハンドラのテスト。"""

    def test_checked(self, make_page, ctx):
        page = make_page(states={"#cat3": ElementState(checked=True, count=1)})
        step = VerifyCheckedStep(verifyChecked="checkboxThirdSelection", label="コンピュータ・IT")
        _run(VerifyCheckedHandler(), page, step, ctx)

    @pytest.mark.parametrize("checked", [False, None])
    def test_not_checked(self, make_page, ctx, checked):
        page = make_page(states={"#cat3": ElementState(checked=checked, count=1)})
        step = VerifyCheckedStep(verifyChecked="checkboxThirdSelection", label="コンピュータ・IT")
        with pytest.raises(VerificationMismatch) as exc_info:
            _run(VerifyCheckedHandler(), page, step, ctx)
        assert exc_info.value.expected is True
        assert exc_info.value.actual is checked


class TestVerifyCollectionCount:
    """verifyCollectionCount ハンドラのテスト。"""

    def test_count_matches(self, make_page, ctx):
        page = make_page(states={"#history a": ElementState(count=2)})
        step = VerifyCollectionCountStep(
            verifyCollectionCount="browsingHistoryItem", expectedCount=2,
        )
        _run(VerifyCollectionCountHandler(), page, step, ctx)

    def test_count_differs(self, make_page, ctx):
        page = make_page(states={"#history a": ElementState(count=3)})
        step = VerifyCollectionCountStep(
            verifyCollectionCount="browsingHistoryItem", expectedCount=2,
        )
        with pytest.raises(VerificationMismatch) as exc_info:
            _run(VerifyCollectionCountHandler(), page, step, ctx)
        assert (exc_info.value.expected, exc_info.value.actual) == (2, 3)

    def test_zero_expected_skips_wait(self, make_page, ctx):
        """期待件数 0 の場合は待機せずに読み取ること。"""
        page = make_page()
        step = VerifyCollectionCountStep(
            verifyCollectionCount="browsingHistoryItem", expectedCount=0,
        )
        _run(VerifyCollectionCountHandler(), page, step, ctx)
        assert page.methods == ["read"]


class TestVerifyOrderedTexts:
    """verifyOrderedTexts ハンドラのテスト。"""

    def test_trims_and_matches(self, make_page, ctx):
        texts = tuple(f"  {text}\n" for text in HISTORY)
        page = make_page(states={"#history a": ElementState(count=3, texts=texts)})
        step = VerifyOrderedTextsStep(
            verifyOrderedTexts="browsingHistoryItem", expectedSubstrings=HISTORY,
        )
        _run(VerifyOrderedTextsHandler(), page, step, ctx)

    def test_mismatch_carries_details_and_index(self, make_page, ctx):
        actual = ("javascript, コンピュータ・IT", "ビジネス・経済", "コンピュータ・IT")
        page = make_page(states={"#history a": ElementState(count=3, texts=actual)})
        step = VerifyOrderedTextsStep(
            verifyOrderedTexts="browsingHistoryItem", expectedSubstrings=HISTORY,
        )
        with pytest.raises(VerificationMismatch) as exc_info:
            _run(VerifyOrderedTextsHandler(), page, step, ctx)

        exc = exc_info.value
        assert exc.index == 1
        assert exc.expected == HISTORY
        assert exc.actual == actual
        assert len(exc.details) == 2


class TestVerifyTextMatches:
    """verifyTextMatches ハンドラのテスト。"""

    @pytest.mark.parametrize("text", ["コンピュータ・IT", " 本 > コンピュータ/IT "])
    def test_matches(self, make_page, ctx, text):
        page = make_page(states={"#history a >> nth=0": ElementState(text=text, count=1)})
        step = VerifyTextMatchesStep(
            verifyTextMatches="latestBrowsingHistory", pattern="コンピュータ・IT|コンピュータ/IT",
        )
        _run(VerifyTextMatchesHandler(), page, step, ctx)

    def test_no_match(self, make_page, ctx):
        page = make_page(states={"#history a >> nth=0": ElementState(text=" ビジネス・経済 ", count=1)})
        step = VerifyTextMatchesStep(
            verifyTextMatches="latestBrowsingHistory", pattern="コンピュータ",
        )
        with pytest.raises(VerificationMismatch) as exc_info:
            _run(VerifyTextMatchesHandler(), page, step, ctx)
        assert exc_info.value.actual == "ビジネス・経済"

"""Tests for token composition and the virtual keyboard."""

import pytest

from unitdc_console.cells import CellStore
from unitdc_console.errors import PreconditionViolation
from unitdc_console.keyboard import KEYS, LAYOUT, MODIFIERS, Keyboard, TokenComposer
from unitdc_console.models import ErrorCell, InputCell, TokenType, UiAction


@pytest.fixture
def store():
    s = CellStore()
    s.append(InputCell())
    return s


@pytest.fixture
def composer(store):
    return TokenComposer(store)


def _text(store):
    return store.active.text


# --- Type separation ---

def test_digits_concatenate(composer, store):
    for digit in "123":
        composer.insert_token(digit, TokenType.LITERAL_NUM)
    assert _text(store) == "123"


def test_type_change_inserts_single_space(composer, store):
    composer.insert_token("3", TokenType.LITERAL_NUM)
    assert composer.insert_token("+", TokenType.OPERATOR) == "3 +"
    assert composer.insert_token("4", TokenType.LITERAL_NUM) == "3 + 4"


def test_first_token_of_fresh_cell_has_no_separator(composer, store):
    composer.insert_token("p", TokenType.OPERATOR)
    assert _text(store) == "p"


def test_operators_concatenate(composer, store):
    composer.insert_token("+", TokenType.OPERATOR)
    composer.insert_token("p", TokenType.OPERATOR)
    assert _text(store) == "+p"


def test_token_type_accepts_plain_strings(composer, store):
    composer.insert_token("1", "literal_num")
    composer.insert_token("n", "operator")
    assert _text(store) == "1 n"
    assert composer.last_type == TokenType.OPERATOR


def test_tracking_resets_when_active_cell_changes(composer, store):
    composer.insert_token("1", TokenType.LITERAL_NUM)
    store.extend([ErrorCell(text="e"), InputCell(text="")])
    assert composer.last_type is None
    composer.insert_token("+", TokenType.OPERATOR)
    assert _text(store) == "+"


def test_typed_text_is_kept(composer, store):
    store.update_active_text("12 ")
    composer.insert_token("3", TokenType.LITERAL_NUM)
    assert _text(store) == "12 3"


# --- Units and modifiers ---

def test_unit_wrapped_in_parentheses(composer, store):
    assert composer.insert_token("m", TokenType.UNIT) == "(m)"


def test_modifier_prefixes_unit_then_clears(composer, store):
    composer.select_modifier("k")
    assert composer.insert_token("m", TokenType.UNIT) == "(km)"
    assert composer.modifier is None
    assert composer.insert_token("m", TokenType.UNIT) == "(km)(m)"


def test_unit_after_number_is_separated(composer, store):
    composer.insert_token("5", TokenType.LITERAL_NUM)
    composer.insert_token("g", TokenType.UNIT)
    assert _text(store) == "5 (g)"


def test_modifier_cleared_by_non_unit_token(composer, store):
    composer.select_modifier("m")
    composer.insert_token("2", TokenType.LITERAL_NUM)
    assert composer.modifier is None
    composer.insert_token("l", TokenType.UNIT)
    assert _text(store) == "2 (l)"


def test_modifier_does_not_touch_other_tokens(composer, store):
    composer.select_modifier("k")
    composer.insert_token("2", TokenType.LITERAL_NUM)
    assert _text(store) == "2"


def test_modifier_toggle_rules(composer):
    assert composer.select_modifier("k") == "k"
    assert composer.select_modifier("m") == "m"
    assert composer.select_modifier("m") is None


def test_unknown_modifier_rejected(composer):
    with pytest.raises(ValueError):
        composer.select_modifier("x")


def test_modifier_survives_ui_actions(composer, store):
    composer.select_modifier("u")
    composer.ui_action(UiAction.APPEND_SPACE)
    composer.insert_token("mol", TokenType.UNIT)
    assert _text(store) == " (umol)"


# --- UI actions ---

def test_space_and_newline(composer, store):
    composer.insert_token("1", TokenType.LITERAL_NUM)
    composer.ui_action(UiAction.APPEND_SPACE)
    composer.ui_action(UiAction.APPEND_NEWLINE)
    assert _text(store) == "1 \n"


def test_space_does_not_affect_type_tracking(composer, store):
    composer.insert_token("1", TokenType.LITERAL_NUM)
    composer.ui_action(UiAction.APPEND_SPACE)
    composer.insert_token("2", TokenType.LITERAL_NUM)
    assert _text(store) == "1 2"


def test_backspace_removes_one_character(composer, store):
    store.update_active_text("12 (m)")
    composer.ui_action(UiAction.BACKSPACE)
    assert _text(store) == "12 (m"


def test_backspace_on_empty_text_is_noop(composer, store):
    composer.ui_action(UiAction.BACKSPACE)
    assert _text(store) == ""


def test_clear(composer, store):
    store.update_active_text("1 2 +")
    composer.ui_action(UiAction.CLEAR)
    assert _text(store) == ""


def test_submit_calls_handler(store):
    calls = []
    composer = TokenComposer(store, on_submit=lambda: calls.append(True))
    composer.ui_action(UiAction.SUBMIT)
    assert calls == [True]


def test_submit_without_handler_raises(composer):
    with pytest.raises(PreconditionViolation):
        composer.ui_action(UiAction.SUBMIT)


# --- Preconditions ---

def test_actions_without_active_cell_raise():
    composer = TokenComposer(CellStore())
    with pytest.raises(PreconditionViolation):
        composer.insert_token("1", TokenType.LITERAL_NUM)
    with pytest.raises(PreconditionViolation):
        composer.ui_action(UiAction.BACKSPACE)


def test_modifier_selection_needs_no_active_cell():
    composer = TokenComposer(CellStore())
    assert composer.select_modifier("n") == "n"


# --- Keyboard layout ---

def test_layout_labels_unique():
    labels = [key.label for column in LAYOUT for key in column]
    assert len(labels) == len(set(labels))
    assert len(KEYS) == len(labels)


def test_every_modifier_has_a_key():
    assert {k.modifier for k in KEYS.values() if k.modifier} == set(MODIFIERS)


def test_keyboard_press_sequence(store):
    keyboard = Keyboard(TokenComposer(store))
    for label in ["1", "2", "(k*)", "(m)", "+", "p"]:
        keyboard.press(label)
    assert _text(store) == "12 (km) +p"


def test_keyboard_ui_keys(store):
    keyboard = Keyboard(TokenComposer(store))
    keyboard.press("7")
    keyboard.press("␣")
    keyboard.press("←")
    keyboard.press("←")
    assert _text(store) == ""
    keyboard.press("9")
    keyboard.press("CLR")
    assert _text(store) == ""


def test_keyboard_unknown_key(store):
    keyboard = Keyboard(TokenComposer(store))
    with pytest.raises(KeyError):
        keyboard.press("?")

from conftest import build_settings

from tsetmc_excel.cli.prompts import ask, ask_int, prompt_settings, select_items


def _answers(*lines):
    replies = iter(lines)
    return lambda prompt: next(replies)


def test_blank_answer_keeps_default():
    assert ask("Interval", 10, _answers("")) == "10"
    assert ask("Interval", 10, _answers(" 20 ")) == "20"


def test_ask_int_retries_until_valid():
    output = []
    value = ask_int("Interval", 10, _answers("abc", "0", "15"), output.append)

    assert value == 15
    assert len(output) == 2


def test_select_items_toggles_and_confirms():
    output = []
    chosen = select_items(
        ["a", "b", "c", "d"],
        ["a", "c"],
        "Pick",
        _answers("1 4", "9, 2", ""),
        output.append,
    )

    assert chosen == ["b", "c", "d"]
    assert any("Ignoring '9'" in line for line in output)


def test_select_items_blank_returns_preselection():
    assert select_items(["a", "b"], ["b"], "Pick", _answers(""), lambda line: None) == ["b"]


def test_prompt_settings_builds_new_settings(tmp_path):
    settings = build_settings(tmp_path)
    all_items = settings.all_items
    fund_toggle = str(all_items.index("pRedTran") + 1)
    price_min_toggle = str(all_items.index("priceMin") + 1)

    updated = prompt_settings(
        settings,
        _answers(
            "444,555",  # codes
            "Delta,Epsilon",  # names
            "",  # workbook
            "Data",  # sheet
            "30",  # interval
            "",  # timeout
            fund_toggle,  # selected: add pRedTran
            "",
            price_min_toggle,  # non-zero: drop priceMin
            "",
        ),
        lambda line: None,
    )

    assert [i.name for i in updated.instruments] == ["Delta", "Epsilon"]
    assert updated.excel_file_name == settings.excel_file_name
    assert updated.sheet_name == "Data"
    assert updated.update_interval == 30
    assert updated.timeout == settings.timeout
    assert "pRedTran" in updated.selected_items
    assert updated.non_zero_items == []
    assert settings.sheet_name == "Instruments"


def test_prompt_settings_asks_again_on_inconsistent_answers(tmp_path):
    settings = build_settings(tmp_path)
    output = []

    updated = prompt_settings(
        settings,
        _answers(
            "1,2", "OnlyOne", "", "", "", "", "", "",
            "1,2", "One,Two", "", "", "", "", "", "",
        ),
        output.append,
    )

    assert [i.name for i in updated.instruments] == ["One", "Two"]
    assert any("Invalid settings" in line for line in output)

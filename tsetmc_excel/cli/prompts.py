"""
Interactive settings prompts.

Asks for each setting with the configured value as the default, then lets
the user toggle which fields to fetch and which must not be zero. Returns
a new settings object; the original is left as is.
"""

from typing import Callable

from tsetmc_excel.core.config import Settings, replace_settings
from tsetmc_excel.services.base import ConfigurationError

InputFunc = Callable[[str], str]
OutputFunc = Callable[[str], None]


def ask(question: str, default, input_func: InputFunc = input) -> str:
    """Ask one question; a blank answer keeps the default."""
    answer = input_func(f"{question} (Default: {default}): ").strip()
    return answer or str(default)


def ask_int(question: str, default: int, input_func: InputFunc = input, output_func: OutputFunc = print) -> int:
    while True:
        answer = ask(question, default, input_func)
        try:
            value = int(answer)
        except ValueError:
            output_func(f"'{answer}' is not a whole number.")
            continue
        if value < 1:
            output_func("Enter a number of at least 1.")
            continue
        return value


def select_items(
    items: list[str],
    preselected: list[str],
    prompt: str,
    input_func: InputFunc = input,
    output_func: OutputFunc = print,
) -> list[str]:
    """
    Numbered toggle menu.

    Typing one or more numbers (space or comma separated) toggles those
    items; a blank line confirms. Selection order follows `items`.
    """
    selected = {i for i, item in enumerate(items) if item in preselected}

    while True:
        output_func(prompt)
        output_func("Type numbers to toggle, Enter to confirm:")
        for i, item in enumerate(items, start=1):
            mark = "[X]" if i - 1 in selected else "[ ]"
            output_func(f"{i:>3}. {mark} {item}")

        answer = input_func("> ").strip()
        if not answer:
            return [item for i, item in enumerate(items) if i in selected]

        for token in answer.replace(",", " ").split():
            if not token.isdigit() or not 1 <= int(token) <= len(items):
                output_func(f"Ignoring '{token}': choose 1-{len(items)}.")
                continue
            index = int(token) - 1
            if index in selected:
                selected.remove(index)
            else:
                selected.add(index)


def prompt_settings(
    settings: Settings,
    input_func: InputFunc = input,
    output_func: OutputFunc = print,
) -> Settings:
    """Walk the user through every setting and return the updated copy."""
    while True:
        changes = {
            "api_parameter": ask("Enter the instrument codes, comma separated", settings.api_parameter, input_func),
            "instrument_names": ask("Enter the instrument names, comma separated", settings.instrument_names, input_func),
            "excel_file_name": ask("Enter the name of the Excel file", settings.excel_file_name, input_func),
            "sheet_name": ask("Enter the name of the worksheet", settings.sheet_name, input_func),
            "update_interval": ask_int(
                "Enter the update interval in seconds", settings.update_interval, input_func, output_func
            ),
            "timeout": ask_int(
                "Enter the timeout of requests in seconds", settings.timeout, input_func, output_func
            ),
        }

        all_items = settings.all_items
        changes["selected_items"] = select_items(
            all_items, settings.selected_items, "Select the items needed to fetch.", input_func, output_func
        )
        changes["non_zero_items"] = select_items(
            all_items, settings.non_zero_items, "Select the items that should not be zero.", input_func, output_func
        )

        try:
            return replace_settings(settings, **changes)
        except ConfigurationError as e:
            output_func(f"Invalid settings: {e.message}")

import json

from tsetmc_excel.main import build_parser, main


def test_parser_defaults():
    args = build_parser().parse_args([])

    assert args.config == "appsettings.json"
    assert not args.ask


def test_main_exits_nonzero_without_instruments(tmp_path):
    path = tmp_path / "appsettings.json"
    path.write_text(json.dumps({"ApiParameter": ""}), encoding="utf-8")

    assert main(["--config", str(path)]) == 1


def test_main_exits_nonzero_on_malformed_config(tmp_path):
    path = tmp_path / "appsettings.json"
    path.write_text("[", encoding="utf-8")

    assert main(["--config", str(path)]) == 1

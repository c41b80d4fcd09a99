import pytest

from ledger_ingest.sources import SourceMatch, classify_source, detect_source, match_filename


@pytest.mark.parametrize(
    ("file_name", "expected"),
    [
        ("KAL1B202405.csv", "orico"),
        ("kal1b202405.CSV", "orico"),
        ("detail20240501(2156).csv", "paypay"),
        ("4614196_20250810131859.csv", "ufj"),
        ("RB-torihikimeisai_202405.csv", "jre"),
        ("meisai_202405.csv", "smbc"),
        ("downloads/statement.csv", "generic"),
        ("notes.txt", None),
    ],
)
def test_match_filename(config, file_name, expected):
    assert match_filename(file_name, config.columns.all_sources()) == expected


def test_detect_source_by_header_after_preamble(config):
    rows = [
        ["三井住友銀行 入出金明細"],
        ["口座番号", "1234567"],
        ["年月日", "お引出し", "お預入れ", "お取り扱い内容", "残高"],
        ["2024/05/01", "1,000", "", "ATM", "99,000"],
    ]
    assert detect_source(rows, "export.csv", config.columns.detection_rules) == "smbc"


def test_detect_source_respects_scan_window(config):
    rows = [["preamble"]] * 3 + [["年月日", "お引出し", "お預入れ"]]
    rules = config.columns.detection_rules
    assert detect_source(rows, "export.csv", rules, header_scan_rows=3) is None
    assert detect_source(rows, "export.csv", rules, header_scan_rows=4) == "smbc"


def test_detect_source_first_rule_wins_on_filename(config):
    # Both the orico filename and the paypay header match; orico is declared first.
    rows = [["日時", "サービス名", "金額"]]
    assert detect_source(rows, "KAL1B.csv", config.columns.detection_rules) == "orico"


def test_classify_source_prefers_rules_then_filename(config):
    header = [["利用日", "利用店名", "利用者", "支払方法", "備考", "利用金額"]]
    assert classify_source("upload.csv", header, config.columns) == SourceMatch("orico", "rule")

    generic = [["date", "description", "amount"]]
    assert classify_source("upload.csv", generic, config.columns) == SourceMatch(
        "generic", "filename"
    )
    assert classify_source("upload.txt", generic, config.columns) is None

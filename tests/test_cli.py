import json

from typer.testing import CliRunner

from ledger_ingest.cli import app

runner = CliRunner()

STATEMENT = (
    "date,description,amount\n"
    "2024-05-01,給与,250000\n"
    "2024-05-03,イオン 三島店,-1080\n"
    "2024-06-01,スーパー,-500\n"
)


def _statement(tmp_path, name="statement.csv"):
    path = tmp_path / name
    path.write_text(STATEMENT, encoding="utf-8")
    return path


def test_ingest_prints_tab_separated_lines(tmp_path):
    path = _statement(tmp_path)
    result = runner.invoke(app, ["ingest", str(path)])

    assert result.exit_code == 0, result.output
    lines = result.stdout.strip().splitlines()
    assert lines == [
        "2024-06-01\texpense\t500\tgrocery\tスーパー",
        "2024-05-03\texpense\t1080\tgrocery\tイオン 三島店",
        "2024-05-01\tincome\t250000\tsalary\t給与",
    ]


def test_ingest_json_output(tmp_path):
    path = _statement(tmp_path)
    result = runner.invoke(app, ["ingest", "--json", str(path)])

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert [row["date"] for row in data] == ["2024-06-01", "2024-05-03", "2024-05-01"]
    salary = data[-1]
    assert salary["type"] == "income"
    assert salary["amount"] == 250000
    assert salary["shopName"] == "給与"
    assert salary["originalData"]["fileName"] == "statement.csv"
    assert salary["originalData"]["rawRow"] == ["2024-05-01", "給与", "250000"]


def test_ingest_without_transactions_fails(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello\n", encoding="utf-8")
    result = runner.invoke(app, ["ingest", str(path)])

    assert result.exit_code == 1
    assert "Error: no valid transactions found" in result.output


def test_monthly_totals(tmp_path):
    path = _statement(tmp_path)
    result = runner.invoke(app, ["monthly", "2024", "5", str(path)])

    assert result.exit_code == 0, result.output
    assert result.stdout.splitlines() == ["income\t250000", "expenses\t1080", "count\t2"]


def test_category_mapping_from_environment(tmp_path, monkeypatch):
    mapping = tmp_path / "categories.json"
    mapping.write_text(
        json.dumps({"mappings": {"給与": "payroll"}}, ensure_ascii=False), encoding="utf-8"
    )
    monkeypatch.setenv("LEDGER_INGEST_CATEGORY_MAPPING", str(mapping))

    result = runner.invoke(app, ["ingest", str(_statement(tmp_path))])

    assert result.exit_code == 0, result.output
    assert "2024-05-01\tincome\t250000\tpayroll\t給与" in result.stdout
    # No keyword matches and no defaults configured.
    assert "2024-06-01\texpense\t500\tothers\tスーパー" in result.stdout


def test_invalid_config_is_reported(tmp_path):
    bad = tmp_path / "columns.json"
    bad.write_text('{"sources": {"x": {"name": "X", "columns": {}}}}', encoding="utf-8")
    result = runner.invoke(
        app, ["ingest", "--column-mapping", str(bad), str(_statement(tmp_path))]
    )

    assert result.exit_code == 1
    assert "Error: invalid ColumnMapping" in result.output


def test_suggest_mapping_writes_template(tmp_path):
    out = tmp_path / "mapping.json"
    result = runner.invoke(app, ["suggest-mapping", str(_statement(tmp_path)), "--output", str(out)])

    assert result.exit_code == 0, result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    keys = list(data["mappings"])
    assert keys[:3] == ["イオン 三島店", "スーパー", "給与"]
    assert data["mappings"]["イオン 三島店"] == "grocery"
    assert data["defaultCategory"] == {"income": "others_income", "expense": "others"}
    assert data["incomeFallbacks"][0]["category"] == "withdraw"

from ws_infra.console import format_table, print_banner, print_error, print_table


def test_format_table_aligns_columns():
    lines = format_table(["ResourceType", "LogicalResourceId"], [
        ["AWS::EC2::VPC", "VPC"],
        ["AWS::EC2::Instance", "ApiInstance"],
    ])

    assert lines[0] == lines[2] == lines[-1]
    assert len({len(line) for line in lines}) == 1
    assert lines[1].startswith("| ResourceType ")
    assert "| AWS::EC2::Instance | ApiInstance       |" in lines


def test_print_table_empty(capsys):
    print_table(["OutputKey", "OutputValue"], [])

    assert "(none)" in capsys.readouterr().out


def test_print_banner_aligns_labels(capsys):
    print_banner("Deployment", [("Stack Name", "ws-api"), ("Region", "us-east-1")])

    out = capsys.readouterr().out
    assert "[INFO] Stack Name: ws-api" in out
    assert "[INFO] Region:     us-east-1" in out


def test_errors_go_to_stderr(capsys):
    print_error("boom")

    captured = capsys.readouterr()
    assert "[ERROR] boom" in captured.err
    assert captured.out == ""

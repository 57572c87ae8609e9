"""
Tests for gcse_marker.diagnostics

Test Coverage:
- PipelineIssue: Serialization
- DiagnosticsCollector: Thread-safe issue collection and summaries
- DiagnosticsReport: Report generation and JSON output
"""
import json
import threading

from gcse_marker.diagnostics import DiagnosticsCollector, DiagnosticsReport, PipelineIssue


class TestPipelineIssue:
    """Tests for PipelineIssue dataclass."""

    def test_to_dict(self):
        """to_dict includes only the optional fields that are set."""
        issue = PipelineIssue(
            issue_type="consensus_rescue",
            stage="schemes",
            message="Q6: rescue toward Edexcel 1MA1/1H June 2022 adopted",
            submission_id="sub-1",
            question_number="6",
            context={"paper": "Edexcel 1MA1/1H June 2022", "adopted": True},
        )

        d = issue.to_dict()

        assert d["issue_type"] == "consensus_rescue"
        assert d["submission_id"] == "sub-1"
        assert d["question_number"] == "6"
        assert d["context"]["adopted"] is True

    def test_to_dict_minimal(self):
        """Unset optional fields are omitted."""
        d = PipelineIssue(issue_type="grade_miss", stage="grading", message="No grade").to_dict()
        assert set(d) == {"issue_type", "stage", "message"}


class TestDiagnosticsCollector:
    """Tests for DiagnosticsCollector class."""

    def test_add_pass_failure(self):
        """add_pass_failure records the pass name."""
        collector = DiagnosticsCollector()
        collector.add_pass_failure("sharpened", "quota exceeded", "sub-1")

        issue = collector.issues_of_type("pass_failure")[0]
        assert issue.message == "Pass 'sharpened' failed: quota exceeded"
        assert issue.context == {"pass": "sharpened"}
        assert issue.stage == "recognition"

    def test_add_math_call_failure(self):
        """add_math_call_failure keys the issue by block signature."""
        collector = DiagnosticsCollector()
        collector.add_math_call_failure("20_20_60_15", "timeout")
        assert collector.issues_of_type("math_call_failure")[0].context == {"block": "20_20_60_15"}

    def test_add_generic_fallback(self):
        """add_generic_fallback records the rubric size."""
        collector = DiagnosticsCollector()
        collector.add_generic_fallback("9", 3)

        issue = collector.issues_of_type("generic_fallback")[0]
        assert issue.question_number == "9"
        assert "generic rubric with 3 slots" in issue.message

    def test_add_hint_and_grade_issues(self):
        """Hint restarts and grade misses carry their reason."""
        collector = DiagnosticsCollector()
        collector.add_hint_restart("adherence 0.17 below 0.5")
        collector.add_grade_miss("No matching grade boundary found")

        assert collector.issue_count == 2
        assert collector.issues_of_type("hint_restart")[0].message.endswith("adherence 0.17 below 0.5")
        assert collector.issues_of_type("grade_miss")[0].message == "No matching grade boundary found"

    def test_summary_empty(self):
        """An empty collector says so."""
        assert DiagnosticsCollector().summary() == "No pipeline issues recorded"

    def test_summary_counts_by_type(self):
        """Summary lists the most frequent issue type first."""
        collector = DiagnosticsCollector()
        collector.add_parse_failure("2", "bad json")
        collector.add_parse_failure("3", "bad json")
        collector.add_grade_miss("no paper")

        lines = collector.summary().splitlines()

        assert lines[0] == "3 pipeline issues"
        assert lines[1] == "  parse_failure: 2"
        assert lines[2] == "  grade_miss: 1"

    def test_thread_safety(self):
        """Concurrent adds are all recorded."""
        collector = DiagnosticsCollector()

        def add_issues(submission):
            for i in range(50):
                collector.add_parse_failure(str(i), "bad json", submission)

        threads = [threading.Thread(target=add_issues, args=(f"sub-{n}",)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        report = collector.generate_report()
        assert report.total_issues == 200
        assert report.submissions == ["sub-0", "sub-1", "sub-2", "sub-3"]


class TestDiagnosticsReport:
    """Tests for DiagnosticsReport class."""

    def test_from_issues(self):
        """from_issues counts issues per type."""
        issues = [
            PipelineIssue(issue_type="pass_failure", stage="recognition", message="a"),
            PipelineIssue(issue_type="pass_failure", stage="recognition", message="b"),
            PipelineIssue(issue_type="hint_restart", stage="schemes", message="c"),
        ]

        report = DiagnosticsReport.from_issues(issues, {"sub-1"})

        assert report.total_issues == 3
        assert report.summary_by_type == {"pass_failure": 2, "hint_restart": 1}

    def test_save(self, tmp_path):
        """save writes the report as JSON, creating parent directories."""
        collector = DiagnosticsCollector()
        collector.add_consensus_rescue("6", "Edexcel 1MA1/1H June 2022", True, "sub-1")
        path = tmp_path / "reports" / "diagnostics.json"

        collector.save(path)

        data = json.loads(path.read_text())
        assert data["total_issues"] == 1
        assert data["submissions"] == ["sub-1"]
        assert data["issues"][0]["message"] == "Q6: rescue toward Edexcel 1MA1/1H June 2022 adopted"

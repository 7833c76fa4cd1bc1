"""Integration tests for the portal CLI."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from thaiinfo.cli import portal
from thaiinfo.cli.portal import cli
from thaiinfo.llm.errors import LlmApiError
from thaiinfo.llm.models import InlineImage
from thaiinfo.store.store import PortalStore


ENTRIES_YAML = """\
entries:
  - title: Seoul Mart Sukhumvit
    category: 마트
    tags: [한식, 식료품]
  - title: Hanok BBQ
    category: 식당
    is_premium: true
  - title: Sabai Massage
    category: 마사지
  - title: Kimchi House
    category: 식당
"""

NORMALIZED_JSON = json.dumps(
    {
        "title": "태국 관광비자 면제 기간 연장",
        "summary": "태국 정부가 무비자 체류 기간을 연장했다.",
        "content": "태국 정부는 한국인 무비자 체류 기간을 60일로 연장한다고 밝혔다.",
        "category": "비자",
        "tags": ["비자", "무비자"],
        "author": "null",
        "language": "th",
    },
    ensure_ascii=False,
)


class StubLlmClient:
    """LLM client double for CLI runs."""

    def __init__(self, response: str = NORMALIZED_JSON, error: Exception | None = None):
        self.response = response
        self.error = error

    def generate_content(
        self,
        prompt: str,
        system_instruction: str | None = None,
        image: InlineImage | None = None,
    ) -> str:
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def runner(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    """CLI runner isolated from the caller's environment and .env file."""
    monkeypatch.chdir(tmp_path)
    for name in ("GEMINI_API_KEY", "THAIINFO_DB_PATH", "THAIINFO_ALLOWED_DOMAINS"):
        monkeypatch.delenv(name, raising=False)
    return CliRunner()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "portal.sqlite"


@pytest.fixture
def seeded_db(runner: CliRunner, db_path: Path, tmp_path: Path) -> Path:
    """Database with four imported entries (ids 1..4, id 2 premium)."""
    entries = tmp_path / "entries.yaml"
    entries.write_text(ENTRIES_YAML, encoding="utf-8")
    result = runner.invoke(cli, ["--db", str(db_path), "import-entries", str(entries)])
    assert result.exit_code == 0, result.output
    return db_path


def _stub_client(monkeypatch: pytest.MonkeyPatch, client: StubLlmClient) -> None:
    monkeypatch.setattr(portal, "create_llm_client", lambda **_: client)


class TestDirectoryCommands:
    """Tests for directory administration commands."""

    def test_init_db(self, runner: CliRunner, db_path: Path) -> None:
        """init-db creates the database file."""
        result = runner.invoke(cli, ["--db", str(db_path), "init-db"])

        assert result.exit_code == 0, result.output
        assert "Database ready" in result.stdout
        assert db_path.exists()

    def test_import_entries(self, runner: CliRunner, seeded_db: Path) -> None:
        """Imported entries are stored in file order."""
        with PortalStore(seeded_db) as store:
            entries = store.list_entries()

        assert [e.title for e in entries] == [
            "Seoul Mart Sukhumvit",
            "Hanok BBQ",
            "Sabai Massage",
            "Kimchi House",
        ]
        assert entries[0].tags == ["한식", "식료품"]
        assert entries[1].is_premium

    def test_import_rejects_invalid_file(
        self, runner: CliRunner, db_path: Path, tmp_path: Path
    ) -> None:
        """A bad entry aborts the import before anything is written."""
        bad = tmp_path / "bad.yaml"
        bad.write_text(
            "- title: Good Cafe\n- title: Bad Weight\n  exposure_weight: 50\n",
            encoding="utf-8",
        )

        result = runner.invoke(cli, ["--db", str(db_path), "import-entries", str(bad)])

        assert result.exit_code == 1
        assert "exposure_weight" in result.stderr
        assert not db_path.exists()

    def test_rank_json(self, runner: CliRunner, seeded_db: Path) -> None:
        """Fresh entries rank premium first, then by input order."""
        result = runner.invoke(cli, ["--db", str(seeded_db), "rank", "--json"])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert [e["id"] for e in payload["entries"]] == [2, 1, 3, 4]
        assert payload["entries"][0]["tier"] == "premium"
        assert payload["exposures_failed"] == {}

    def test_rank_category_and_limit(self, runner: CliRunner, seeded_db: Path) -> None:
        """Category filters before ranking; limit trims the output."""
        result = runner.invoke(
            cli,
            ["--db", str(seeded_db), "rank", "--category", "식당", "--limit", "1", "--json"],
        )

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert [e["id"] for e in payload["entries"]] == [2]

    def test_rank_records_exposures(self, runner: CliRunner, seeded_db: Path) -> None:
        """Shown entries are counted as exposed and drop back next time."""
        first = runner.invoke(
            cli,
            ["--db", str(seeded_db), "rank", "--limit", "2", "--record-exposures"],
        )
        assert first.exit_code == 0, first.output

        with PortalStore(seeded_db) as store:
            counts = {e.id: e.exposure_count for e in store.list_entries()}
        assert counts == {1: 1, 2: 1, 3: 0, 4: 0}

        second = runner.invoke(cli, ["--db", str(seeded_db), "rank", "--json"])
        ids = [e["id"] for e in json.loads(second.stdout)["entries"]]
        assert ids[1:3] == [3, 4]

    def test_stats(self, runner: CliRunner, seeded_db: Path) -> None:
        """stats reports totals and active premium entries."""
        result = runner.invoke(cli, ["--db", str(seeded_db), "stats", "--json"])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["total_entries"] == 4
        assert payload["total_exposures"] == 0
        assert payload["premium_entries"] == 1
        assert [p["id"] for p in payload["premium"]] == [2]

    def test_grant_and_revoke_premium(self, runner: CliRunner, seeded_db: Path) -> None:
        """Premium can be granted and revoked by id."""
        granted = runner.invoke(
            cli, ["--db", str(seeded_db), "grant-premium", "3", "--days", "7"]
        )
        assert granted.exit_code == 0, granted.output
        assert "Sabai Massage is premium until" in granted.stdout

        revoked = runner.invoke(cli, ["--db", str(seeded_db), "revoke-premium", "3"])
        assert revoked.exit_code == 0, revoked.output

        with PortalStore(seeded_db) as store:
            entry = store.require_entry(3)
        assert not entry.is_premium
        assert entry.premium_expires_at is None

    def test_reset_counters(self, runner: CliRunner, seeded_db: Path) -> None:
        """reset-counters zeroes both counters."""
        with PortalStore(seeded_db) as store:
            store.increment_view_count(1, 5)

        result = runner.invoke(cli, ["--db", str(seeded_db), "reset-counters", "1"])

        assert result.exit_code == 0, result.output
        with PortalStore(seeded_db) as store:
            assert store.require_entry(1).view_count == 0

    def test_unknown_entry_fails(self, runner: CliRunner, seeded_db: Path) -> None:
        """Admin commands on a missing id exit with an error."""
        result = runner.invoke(cli, ["--db", str(seeded_db), "revoke-premium", "99"])

        assert result.exit_code == 1
        assert "Error:" in result.stderr

    def test_set_weight(self, runner: CliRunner, seeded_db: Path) -> None:
        """set-weight stores the new multiplier."""
        result = runner.invoke(cli, ["--db", str(seeded_db), "set-weight", "3", "2.5"])

        assert result.exit_code == 0, result.output
        assert "exposure weight 2.5" in result.stdout
        with PortalStore(seeded_db) as store:
            assert store.require_entry(3).exposure_weight == 2.5

    def test_set_weight_out_of_range(self, runner: CliRunner, seeded_db: Path) -> None:
        """Weights outside [0.1, 10.0] are refused and nothing changes."""
        result = runner.invoke(cli, ["--db", str(seeded_db), "set-weight", "3", "11"])

        assert result.exit_code == 1
        assert "exposure weight must be between" in result.stderr
        with PortalStore(seeded_db) as store:
            assert store.require_entry(3).exposure_weight == 1.0

    def test_record_views(
        self, runner: CliRunner, seeded_db: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Repeated ids are coalesced into one write using the configured delay."""
        delays: list[float] = []
        real_buffer = portal.ViewCountBuffer

        def capture(sink, flush_delay_seconds):  # noqa: ANN001, ANN202
            delays.append(flush_delay_seconds)
            return real_buffer(sink, flush_delay_seconds)

        monkeypatch.setattr(portal, "ViewCountBuffer", capture)

        result = runner.invoke(
            cli,
            ["--db", str(seeded_db), "record-views", "1", "1", "4"],
            env={"THAIINFO_VIEW_FLUSH_DELAY": "0.5"},
        )

        assert result.exit_code == 0, result.output
        assert "Recorded 3 views across 2 ids." in result.stdout
        assert delays == [0.5]
        with PortalStore(seeded_db) as store:
            assert store.require_entry(1).view_count == 2
            assert store.require_entry(4).view_count == 1
            assert store.require_entry(1).exposure_count == 0

    def test_record_views_unknown_id(self, runner: CliRunner, seeded_db: Path) -> None:
        """Views for a missing id are reported; the others are still written."""
        result = runner.invoke(
            cli, ["--db", str(seeded_db), "record-views", "2", "99"]
        )

        assert result.exit_code == 1
        assert "views recorded for 1 of 2 ids" in result.stderr
        with PortalStore(seeded_db) as store:
            assert store.require_entry(2).view_count == 1


class TestIngestCommands:
    """Tests for the ingestion commands."""

    def test_ingest_text_requires_api_key(self, runner: CliRunner, db_path: Path) -> None:
        """Without credentials the command fails before any call is made."""
        result = runner.invoke(
            cli, ["--db", str(db_path), "ingest-text", "-"], input="태국 뉴스 본문"
        )

        assert result.exit_code == 1
        assert "GEMINI_API_KEY" in result.stderr

    def test_ingest_text_prints_record(
        self, runner: CliRunner, db_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """The normalized record is printed as JSON and not stored."""
        _stub_client(monkeypatch, StubLlmClient())

        result = runner.invoke(
            cli,
            ["--db", str(db_path), "ingest-text", "-", "--title", "ประกาศวีซ่า"],
            input="รัฐบาลไทยขยายเวลาพำนักโดยไม่ต้องขอวีซ่า",
        )

        assert result.exit_code == 0, result.output
        record = json.loads(result.stdout)
        assert record["category"] == "비자"
        assert record["language"] == "th"
        assert record["is_translated"] is True
        assert record["author"] is None
        assert record["source_kind"] == "text"
        assert not db_path.exists()

    def test_ingest_text_publish(
        self, runner: CliRunner, db_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """--publish stores the record with its category and tags."""
        _stub_client(monkeypatch, StubLlmClient())

        result = runner.invoke(
            cli,
            ["--db", str(db_path), "ingest-text", "-", "--publish"],
            input="Thailand extends visa-free stay for Korean visitors",
        )

        assert result.exit_code == 0, result.output
        assert "Published news #1" in result.stderr
        with PortalStore(db_path) as store:
            document = store.require_news(1)
        assert document.tags == ["비자", "무비자"]

    def test_ingest_text_fallback_warns(
        self, runner: CliRunner, db_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """An unparseable response yields a fallback record and a warning."""
        _stub_client(monkeypatch, StubLlmClient(response="죄송합니다. 처리할 수 없습니다."))

        result = runner.invoke(
            cli,
            ["--db", str(db_path), "ingest-text", "-"],
            input="Bangkok traffic update",
        )

        assert result.exit_code == 0, result.output
        record = json.loads(result.stdout)
        assert record["used_fallback"] is True
        assert record["category"] == "기타"
        assert record["tags"] == ["뉴스"]
        assert "Warning" in result.stderr

    def test_ingest_service_failure(
        self, runner: CliRunner, db_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A failed service call shows the operator message and exits 1."""
        _stub_client(
            monkeypatch,
            StubLlmClient(error=LlmApiError("quota exceeded", status_code=429)),
        )

        result = runner.invoke(
            cli, ["--db", str(db_path), "ingest-text", "-"], input="Bangkok news"
        )

        assert result.exit_code == 1
        assert "AI 분석 서비스 호출에 실패했습니다" in result.stderr

    def test_ingest_url_rejects_unlisted_domain(
        self, runner: CliRunner, db_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Hosts outside the default allowlist are refused."""
        _stub_client(monkeypatch, StubLlmClient())

        result = runner.invoke(
            cli, ["--db", str(db_path), "ingest-url", "https://example.com/news/1"]
        )

        assert result.exit_code == 1
        assert "허용되지 않은 도메인" in result.stderr

    def test_ingest_image_rejects_non_image(
        self,
        runner: CliRunner,
        db_path: Path,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Non-image files are refused before the service is called."""
        _stub_client(monkeypatch, StubLlmClient())
        note = tmp_path / "note.txt"
        note.write_text("not an image", encoding="utf-8")

        result = runner.invoke(cli, ["--db", str(db_path), "ingest-image", str(note)])

        assert result.exit_code == 1
        assert "이미지 파일만" in result.stderr

    def test_ingest_entry_saves_draft(
        self, runner: CliRunner, db_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A drafted entry is printed and, with --save, added as a regular entry."""
        response = json.dumps(
            {
                "title": "Seoul Hair Salon",
                "description": "아속역 근처 한국인 미용실",
                "location": "Sukhumvit 21",
                "phone": "02-123-4567",
                "website": None,
                "tags": ["미용실", "아속"],
            },
            ensure_ascii=False,
        )
        _stub_client(monkeypatch, StubLlmClient(response=response))

        result = runner.invoke(
            cli,
            ["--db", str(db_path), "ingest-entry", "-", "--category", "미용", "--save"],
            input="서울 헤어살롱 아속역 5분 Sukhumvit 21 전화 02-123-4567",
        )

        assert result.exit_code == 0, result.output
        draft = json.loads(result.stdout)
        assert draft["title"] == "Seoul Hair Salon"
        assert draft["category"] == "미용"
        assert "Added entry #1" in result.stderr
        with PortalStore(db_path) as store:
            entry = store.require_entry(1)
        assert entry.phone == "02-123-4567"
        assert entry.website is None
        assert not entry.is_premium
        assert entry.exposure_count == 0

    def test_ingest_entry_blank_text(
        self, runner: CliRunner, db_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Blank input is refused with the operator message."""
        _stub_client(monkeypatch, StubLlmClient())

        result = runner.invoke(
            cli, ["--db", str(db_path), "ingest-entry", "-"], input="   \n"
        )

        assert result.exit_code == 1
        assert "분석할 텍스트가 없습니다." in result.stderr
        assert not db_path.exists()

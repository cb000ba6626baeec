"""Tests for the artifact store and instant-upload lookup."""

import hashlib

import pytest

from common.exceptions import NotFoundError, ValidationError
from controller.services.dedup_service import DedupIndex


@pytest.fixture
def dedup_index(artifact_store):
    return DedupIndex(artifact_store)


class TestArtifactStore:
    """Test artifact lookup and listing."""

    def test_stat_existing_artifact(self, artifact_store):
        (artifact_store.root / "report.pdf").write_bytes(b"x" * 42)

        info = artifact_store.stat("report.pdf")

        assert info.name == "report.pdf"
        assert info.size == 42
        assert info.created_at is not None

    def test_stat_missing_artifact(self, artifact_store):
        with pytest.raises(NotFoundError):
            artifact_store.stat("missing.pdf")

    def test_list_artifacts_sorted_and_skips_temp_files(self, artifact_store):
        (artifact_store.root / "b.bin").write_bytes(b"bb")
        (artifact_store.root / "a.bin").write_bytes(b"a")
        (artifact_store.root / ".b.bin.123.part").write_bytes(b"partial")
        (artifact_store.root / "subdir").mkdir()

        artifacts = artifact_store.list_artifacts()

        assert [a.name for a in artifacts] == ["a.bin", "b.bin"]
        assert [a.size for a in artifacts] == [1, 2]

    def test_list_artifacts_missing_root(self, tmp_path):
        from controller.services.artifact_service import ArtifactStore

        assert ArtifactStore(tmp_path / "absent").list_artifacts() == []

    def test_artifact_url(self, artifact_store):
        assert artifact_store.get_artifact_url("final.bin") == "/uploads/final.bin"


class TestVerify:
    """Test integrity verification."""

    def test_verify_matching_digest(self, artifact_store):
        (artifact_store.root / "final.bin").write_bytes(b"AABBCC")
        digest = hashlib.md5(b"AABBCC").hexdigest()

        result = artifact_store.verify(digest, "final.bin")

        assert result.verified is True
        assert result.actual == digest

    def test_verify_mismatch_reports_both_values(self, artifact_store):
        (artifact_store.root / "final.bin").write_bytes(b"AABBCC")
        digest = hashlib.md5(b"AABBCC").hexdigest()

        result = artifact_store.verify("deadbeef", "final.bin")

        assert result.verified is False
        assert result.expected == "deadbeef"
        assert result.actual == digest

    def test_verify_strips_temporary_prefix(self, artifact_store):
        (artifact_store.root / "final.bin").write_bytes(b"AABBCC")
        digest = hashlib.md5(b"AABBCC").hexdigest()

        result = artifact_store.verify(f"temp-1700000000-{digest}", "final.bin")

        assert result.verified is True
        assert result.expected == digest

    def test_verify_missing_artifact(self, artifact_store):
        with pytest.raises(NotFoundError):
            artifact_store.verify("abc", "missing.bin")

    def test_verify_empty_hash_rejected(self, artifact_store):
        (artifact_store.root / "final.bin").write_bytes(b"AABBCC")

        with pytest.raises(ValidationError):
            artifact_store.verify("", "final.bin")

    def test_verify_blank_hash_rejected(self, artifact_store):
        (artifact_store.root / "final.bin").write_bytes(b"AABBCC")

        with pytest.raises(ValidationError):
            artifact_store.verify("   ", "final.bin")

    @pytest.mark.parametrize("declared", ["abc/def==", ".deadbeef", "a\\b"])
    def test_verify_arbitrary_hash_reports_mismatch(self, artifact_store, declared):
        (artifact_store.root / "final.bin").write_bytes(b"AABBCC")

        result = artifact_store.verify(declared, "final.bin")

        assert result.verified is False
        assert result.expected == declared
        assert result.actual == hashlib.md5(b"AABBCC").hexdigest()

    def test_verify_with_sha256_store(self, tmp_path):
        from controller.services.artifact_service import ArtifactStore

        store = ArtifactStore(tmp_path / "sha", hash_algorithm="sha256")
        store.ensure_root()
        (store.root / "final.bin").write_bytes(b"AABBCC")

        result = store.verify(hashlib.sha256(b"AABBCC").hexdigest(), "final.bin")

        assert result.verified is True


class TestDedupIndex:
    """Test the name-and-size instant upload check."""

    def test_found_on_exact_size_match(self, dedup_index, artifact_store):
        (artifact_store.root / "movie.mp4").write_bytes(b"x" * 100)

        result = dedup_index.exists("movie.mp4", 100)

        assert result.found is True
        assert result.metadata.size == 100
        assert result.metadata.name == "movie.mp4"

    def test_not_found_when_absent(self, dedup_index):
        result = dedup_index.exists("movie.mp4", 100)

        assert result.found is False
        assert result.metadata is None

    def test_size_mismatch_is_not_found(self, dedup_index, artifact_store):
        (artifact_store.root / "movie.mp4").write_bytes(b"x" * 100)

        assert dedup_index.exists("movie.mp4", 99).found is False
        assert dedup_index.exists("movie.mp4", 101).found is False

    def test_missing_declared_size_is_not_found(self, dedup_index, artifact_store):
        (artifact_store.root / "movie.mp4").write_bytes(b"x" * 100)

        assert dedup_index.exists("movie.mp4", None).found is False

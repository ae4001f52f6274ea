from __future__ import annotations

import io
import zipfile

import pytest

from app.core.exports.archive import ArchivePackager, sanitize_filename


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Feelings: big & small", "Feelings_ big & small"),
        ('a/b\\c*d?e"f<g>h|i', "a_b_c_d_e_f_g_h_i"),
        ("   ", "untitled"),
        ("", "untitled"),
        ("Calm corner", "Calm corner"),
    ],
)
def test_sanitize_filename(raw, expected):
    assert sanitize_filename(raw) == expected


def test_repeated_names_get_counter_suffix():
    packager = ArchivePackager()

    names = [packager.add_document(name, b"%PDF") for name in ["A", "A", "B", "A"]]

    assert names == ["A.pdf", "A (2).pdf", "B.pdf", "A (3).pdf"]


def test_literal_suffixed_name_is_not_overwritten():
    packager = ArchivePackager()

    names = [packager.add_document(name, b"%PDF") for name in ["A (2)", "A", "A"]]

    assert len(set(names)) == 3
    assert names[0] == "A (2).pdf"
    assert names[1] == "A.pdf"
    assert names[2] == "A (3).pdf"


def test_names_collide_after_sanitizing():
    packager = ArchivePackager()

    names = [packager.add_document(name, b"%PDF") for name in ["a/b", "a:b"]]

    assert names == ["a_b.pdf", "a_b (2).pdf"]


def test_finalize_returns_zip_with_all_entries():
    packager = ArchivePackager()
    packager.add_document("Feelings", b"one")
    packager.add_document("Feelings", b"two")

    archive = packager.finalize()

    with zipfile.ZipFile(io.BytesIO(archive)) as zf:
        assert zf.namelist() == ["Feelings.pdf", "Feelings (2).pdf"]
        assert zf.read("Feelings (2).pdf") == b"two"


def test_add_after_finalize_fails():
    packager = ArchivePackager()
    packager.add_document("A", b"x")
    packager.finalize()

    with pytest.raises(RuntimeError):
        packager.add_document("B", b"y")


def test_duplicate_entry_rejected():
    packager = ArchivePackager()
    packager.add_file("A.pdf", b"x")

    with pytest.raises(ValueError):
        packager.add_file("A.pdf", b"y")

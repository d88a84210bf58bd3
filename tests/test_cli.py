import numpy as np
import pytest

from dcmview.cli import main
from tests.conftest import make_dataset, write_dicom


@pytest.fixture
def dicom_file(tmp_path, gradient_pixels):
    return write_dicom(tmp_path / "scan.dcm", make_dataset(gradient_pixels, Modality="CT"))


def test_single_file(no_user_config, capsysbinary, dicom_file):
    assert main([dicom_file, "--protocol", "blocks"]) == 0
    out = capsysbinary.readouterr().out
    assert "▀".encode("utf-8") in out
    assert dicom_file.encode() not in out


def test_metadata_flag(no_user_config, capsysbinary, dicom_file):
    assert main([dicom_file, "--protocol", "blocks", "-v"]) == 0
    assert b"Modality" in capsysbinary.readouterr().out


def test_multiple_files_show_names_and_survive_failures(no_user_config, capsysbinary, tmp_path, dicom_file):
    broken = tmp_path / "broken.dcm"
    broken.write_bytes(b"garbage")
    assert main([dicom_file, str(broken), dicom_file, "--protocol", "blocks"]) == 0
    captured = capsysbinary.readouterr()
    assert captured.out.count(dicom_file.encode() + b"\n") == 2
    assert str(broken).encode() in captured.out
    assert str(broken).encode() in captured.err


def test_all_failures_exit_non_zero(no_user_config, capsysbinary, tmp_path):
    broken = tmp_path / "broken.dcm"
    broken.write_bytes(b"garbage")
    assert main([str(broken), "--protocol", "blocks"]) == 1


def test_window_arguments_go_together(no_user_config, dicom_file):
    with pytest.raises(SystemExit) as excinfo:
        main([dicom_file, "--window-center", "40"])
    assert excinfo.value.code == 2


def test_window_override(no_user_config, capsysbinary, tmp_path):
    pixels = np.array([[0, 1000], [2000, 3000]], dtype=np.uint16)
    path = write_dicom(tmp_path / "w.dcm", make_dataset(pixels))
    assert main([path, "--protocol", "blocks", "--window-center", "0", "--window-width", "2"]) == 0


def test_protocol_from_config(capsysbinary, monkeypatch, tmp_path, dicom_file):
    config = tmp_path / "config.yaml"
    config.write_text("display:\n  protocol: kitty\n")
    monkeypatch.setenv("DCMVIEW_CONFIG", str(config))
    assert main([dicom_file]) == 0
    assert capsysbinary.readouterr().out.startswith(b"\033_G")


def test_bad_config_file(capsysbinary, tmp_path, dicom_file):
    config = tmp_path / "config.yaml"
    config.write_text("- just\n- a list\n")
    assert main([dicom_file, "--config", str(config)]) == 2
    assert b"invalid configuration" in capsysbinary.readouterr().err

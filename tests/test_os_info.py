from mepris.expr import eval_os, parse
from mepris.system import OsInfo, Platform, detect_os_info, parse_os_release

OS_RELEASE = """\
NAME="Linux Mint"
ID=linuxmint
ID_LIKE="ubuntu debian"
# comment
VERSION_ID="21.3"
"""


def test_parse_os_release():
    values = parse_os_release(OS_RELEASE)
    assert values["ID"] == "linuxmint"
    assert values["ID_LIKE"] == "ubuntu debian"
    assert values["NAME"] == "Linux Mint"


def test_detect_from_file(temp_dir):
    path = temp_dir / "os-release"
    path.write_text(OS_RELEASE)
    info = detect_os_info(path, Platform.LINUX)
    assert info == OsInfo(Platform.LINUX, id="linuxmint", id_like=("ubuntu", "debian"))


def test_missing_file_reports_platform_only(temp_dir):
    info = detect_os_info(temp_dir / "nope", Platform.LINUX)
    assert info == OsInfo(Platform.LINUX)


def test_other_platforms_ignore_os_release(temp_dir):
    path = temp_dir / "os-release"
    path.write_text(OS_RELEASE)
    assert detect_os_info(path, Platform.MACOS) == OsInfo(Platform.MACOS)


def test_family_matching():
    info = OsInfo(Platform.LINUX, id="linuxmint", id_like=("ubuntu", "debian"))
    assert eval_os(parse("%debian"), info)
    assert eval_os(parse("Linux && !linuxmint || %Ubuntu"), info)
    assert not eval_os(parse("%arch"), info)

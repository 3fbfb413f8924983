try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest
from pydantic import ValidationError

from plant_identifier.schemas import DEFAULT_DIFFICULTY, NOT_FOUND, PlantRecord
from plant_identifier.services.plant_parser import (
    InvalidArgumentError,
    PlantInfoParser,
    parse_plant_info,
)

MONSTERA_TEXT = """\
이름: 몬스테라
학명: Monstera deliciosa
물주기: 주 1회
특징:
- 잎이 크다
주의사항:
- 직사광선 피하기
"""


def test_parses_well_formed_description():
    record = parse_plant_info(MONSTERA_TEXT)

    assert record == PlantRecord(
        name="몬스테라",
        scientific_name="Monstera deliciosa",
        water_frequency="주 1회",
        features=("잎이 크다",),
        precautions=("직사광선 피하기",),
    )
    assert record.temperature == NOT_FOUND
    assert record.humidity == NOT_FOUND
    assert record.difficulty == DEFAULT_DIFFICULTY


@pytest.mark.parametrize(
    "text",
    [
        "",
        "   \n\n\t",
        "I could not identify this plant.",
        ":::::",
        "- 떠도는 항목\n• 또 다른 항목",
        "\x00\ufeff이상한 입력\r\n",
    ],
)
def test_malformed_text_yields_defaults(text):
    record = parse_plant_info(text)

    assert record.name == NOT_FOUND
    assert record.scientific_name == NOT_FOUND
    assert record.water_frequency == NOT_FOUND
    assert record.temperature == NOT_FOUND
    assert record.humidity == NOT_FOUND
    assert record.difficulty == DEFAULT_DIFFICULTY
    assert record.features == ()
    assert record.precautions == ()


def test_none_is_rejected():
    with pytest.raises(InvalidArgumentError):
        parse_plant_info(None)  # type: ignore[arg-type]


def test_non_string_is_rejected():
    with pytest.raises(InvalidArgumentError):
        PlantInfoParser().parse(b"\xec\x9d\xb4\xeb\xa6\x84: A")  # type: ignore[arg-type]


def test_last_label_wins():
    record = parse_plant_info("이름: A\n학명: X\n이름: B")

    assert record.name == "B"
    assert record.scientific_name == "X"


def test_empty_value_replaces_sentinel():
    record = parse_plant_info("온도:\n습도:   ")

    assert record.temperature == ""
    assert record.humidity == ""
    assert record.name == NOT_FOUND


def test_bullets_before_any_header_are_dropped():
    record = parse_plant_info("- 잎이 크다\n• 덩굴성\n특징:\n- 공기 정화\n• 빠른 성장")

    assert record.features == ("공기 정화", "빠른 성장")
    assert record.precautions == ()


def test_only_one_bullet_marker_is_stripped():
    record = parse_plant_info("주의사항:\n- - 이중 표시\n-\n•   \n plain line ")

    assert record.precautions == ("- 이중 표시", "plain line")


def test_blank_lines_do_not_reset_section():
    record = parse_plant_info("특징:\n- 하나\n\n\n- 둘\n주의사항:\n\n- 셋")

    assert record.features == ("하나", "둘")
    assert record.precautions == ("셋",)


def test_labels_match_anywhere_in_line():
    record = parse_plant_info("**이름:** 스투키\n1. 학명: Sansevieria stuckyi\n  · 온도: 20~25도")

    assert record.name == "** 스투키"
    assert record.scientific_name == "Sansevieria stuckyi"
    assert record.temperature == "20~25도"


def test_value_is_everything_after_first_colon():
    record = parse_plant_info("물주기: 여름: 주 2회, 겨울: 월 2회")

    assert record.water_frequency == "여름: 주 2회, 겨울: 월 2회"


def test_alternate_name_label():
    record = parse_plant_info("식물명: 산세베리아")

    assert record.name == "산세베리아"


def test_difficulty_line_is_a_feature_not_a_label():
    record = parse_plant_info("특징:\n- 난이도: 쉬움")

    assert record.features == ("난이도: 쉬움",)
    assert record.difficulty == DEFAULT_DIFFICULTY


def test_difficulty_line_outside_section_is_ignored():
    record = parse_plant_info("난이도: 중급")

    assert record == PlantRecord()


def test_scalar_label_inside_section_takes_precedence():
    record = parse_plant_info("주의사항:\n- 온도: 10도 이하 주의\n- 과습 주의")

    assert record.temperature == "10도 이하 주의"
    assert record.precautions == ("과습 주의",)


def test_header_with_trailing_text_switches_section_without_content():
    record = parse_plant_info("특징: 아래 참고\n- 잎에 구멍")

    assert record.features == ("잎에 구멍",)


def test_parsing_is_idempotent_and_returns_new_records():
    first = parse_plant_info(MONSTERA_TEXT)
    second = parse_plant_info(MONSTERA_TEXT)

    assert first == second
    assert first is not second


def test_record_is_immutable():
    record = parse_plant_info(MONSTERA_TEXT)

    with pytest.raises(ValidationError):
        record.name = "changed"  # type: ignore[misc]

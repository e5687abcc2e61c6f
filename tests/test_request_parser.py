"""Tests for the free-text request parser."""

from smartmenu.services.ai import parse_user_message
from smartmenu.services.catalog import Tag


def test_defaults_when_nothing_detected():
    intent = parse_user_message("Привет, что посоветуете?")
    assert intent.people == 2
    assert intent.budget == 30000
    assert intent.must_have == []
    assert intent.exclude == []
    assert intent.preferences == []


def test_people_number_with_person_word():
    assert parse_user_message("5 человек").people == 5
    assert parse_user_message("будет 3 гостя").people == 3
    assert parse_user_message("на 4 персоны").people == 4


def test_people_ignores_long_numbers():
    assert parse_user_message("123 человек").people == 2


def test_we_are_overrides_first_match():
    assert parse_user_message("нас 4, а вообще 6 персон").people == 4


def test_people_word_overrides_numbers():
    assert parse_user_message("нас 4, хотя нет, пятеро").people == 5
    assert parse_user_message("Нас трое").people == 3


def test_budget_forms():
    assert parse_user_message("бюджет 45000").budget == 45000
    assert parse_user_message("бюджет 40 000").budget == 40000
    assert parse_user_message("уложиться в 20000 ₸").budget == 20000
    assert parse_user_message("15000 тенге на всех").budget == 15000
    assert parse_user_message("10000тг").budget == 10000


def test_budget_only_first_match():
    assert parse_user_message("бюджет 25000, можно до 30000 ₸").budget == 25000


def test_must_have_triggers():
    assert parse_user_message("Хочу кальян и сет").must_have == ["hookah", "sets"]
    assert parse_user_message("что-нибудь в центр стола").must_have == ["sets"]


def test_exclude_triggers():
    intent = parse_user_message("Без алкоголя и без свинины, не острое")
    assert intent.exclude == [Tag.NO_ALCOHOL, Tag.HALAL, Tag.NOT_SPICY]
    assert parse_user_message("я веган").exclude == [Tag.VEGAN]
    assert parse_user_message("только халяль").exclude == [Tag.HALAL]


def test_preference_triggers():
    intent = parse_user_message("что-нибудь сладкое под кальян")
    assert intent.preferences == [Tag.SWEET, Tag.FOR_HOOKAH]
    assert intent.must_have == ["hookah"]


def test_full_request():
    intent = parse_user_message("Нас 4 человека, бюджет 40000, хотим кальян, без алкоголя")
    assert intent.people == 4
    assert intent.budget == 40000
    assert intent.must_have == ["hookah"]
    assert intent.exclude == [Tag.NO_ALCOHOL]

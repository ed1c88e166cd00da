from datetime import date

from sqlalchemy.dialects import postgresql

from filterql.core.quoting import Quoter, quote, quote_ident


def test_strings_are_single_quoted_and_escaped():
    assert quote('red') == "'red'"
    assert quote("x' OR '1'='1") == "'x'' OR ''1''=''1'"


def test_semicolons_and_comments_stay_inside_the_literal():
    assert quote("a; DROP TABLE buckets; --") == "'a; DROP TABLE buckets; --'"


def test_percent_is_not_doubled():
    assert quote('50%') == "'50%'"
    assert Quoter(postgresql.dialect()).quote('a%b%%c') == "'a%b%%c'"


def test_non_finite_floats_render_as_typed_literals():
    assert quote(float('nan')) == "'NaN'::float"
    assert quote(float('inf')) == "'Infinity'::float"
    assert quote(float('-inf')) == "'-Infinity'::float"


def test_scalars():
    assert quote(None) == 'NULL'
    assert quote(True) == 'TRUE'
    assert quote(False) == 'FALSE'
    assert quote(42) == '42'
    assert quote(1.5) == '1.5'


def test_dates_render_as_literals():
    assert "2020-01-31" in quote(date(2020, 1, 31))


class Thing:
    def __str__(self):
        return 'thing'


def test_unrenderable_values_fall_back_to_text():
    assert quote(Thing()) == "'thing'"


def test_backslashes_follow_the_live_dialect():
    assert Quoter().quote('a\\b') == "'a\\b'"
    legacy = postgresql.dialect()
    legacy._backslash_escapes = True
    assert Quoter(legacy).quote('a\\b') == "'a\\\\b'"


def test_identifiers_are_always_quoted():
    assert quote_ident('buckets') == '"buckets"'
    assert quote_ident('we"ird') == '"we""ird"'
    assert Quoter().qualify('buckets', 'color') == '"buckets"."color"'
    assert Quoter().quote_all(['a', 1]) == "'a',1"

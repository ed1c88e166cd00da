import pytest

from filterql import Between
from filterql.core.parser import FilterParser, normalize_order
from filterql.errors import UnsupportedFilter
from tests.models import Bucket, Marble, Person, Pet
from tests.schema import schema


@pytest.fixture
def parser():
    return FilterParser()


@pytest.fixture
def bucket():
    return schema.get_meta(Bucket)


def test_scalar_filters_scenario_a(parser, bucket):
    parsed = parser.parse({'color': 'red', 'material': 'plastic'}, bucket)
    assert parsed.main == [
        "\"buckets\".\"color\" = 'red'",
        "\"buckets\".\"material\" = 'plastic'",
    ]


def test_percent_values_reach_sql_unchanged(parser):
    person = schema.get_meta(Person)
    parsed = parser.parse({'name__contains': '50%', 'gender': '100%'}, person)
    assert parsed.main == [
        "\"people\".\"name\" LIKE '%' || '50%' || '%'",
        "\"people\".\"gender\" = '100%'",
    ]


def test_default_filters_are_merged_underneath(parser, bucket):
    parsed = parser.parse({}, bucket)
    assert parsed.has_many == {'marbles': ['"__marbles"."radius" <= 10']}
    assert parsed.has_many_order == {'marbles': None}


def test_caller_filters_win_over_defaults(parser, bucket):
    parsed = parser.parse({'marbles': {'color': 'blue'}}, bucket)
    assert parsed.has_many['marbles'] == ["\"__marbles\".\"color\" = 'blue'"]


def test_input_is_not_mutated(parser, bucket):
    filters = {'color': 'red', '__order': 'color', '__params': [1]}
    parser.parse(filters, bucket)
    assert filters == {'color': 'red', '__order': 'color', '__params': [1]}


def test_unknown_key_is_fatal(parser, bucket):
    with pytest.raises(UnsupportedFilter) as exc:
        parser.parse({'name': 'x'}, bucket)
    assert exc.value.message == 'Filter "name" not supported.'
    assert exc.value.key == 'name'


def test_safe_mode_whitelist(parser, bucket):
    with pytest.raises(UnsupportedFilter) as exc:
        parser.parse({'used': True}, bucket, safe=True)
    assert exc.value.message == 'Filter "used" not supported.'
    # not in safe mode the same key is fine
    assert parser.parse({'used': True}, bucket).main == ['"buckets"."used" IS TRUE']


def test_safe_mode_checks_key_root_and_skips_control_keys(parser, bucket):
    parsed = parser.parse({'color__in': ['red'], '__order': 'color', '__offset': 5, '__count': 1}, bucket, safe=True)
    assert parsed.main == ["\"buckets\".\"color\" IN ('red')"]


def test_safe_mode_does_not_check_defaults(parser, bucket):
    # marbles comes from the declared defaults, not from the caller
    parsed = parser.parse({'color': 'red'}, bucket, safe=True)
    assert 'marbles' in parsed.has_many


def test_unknown_comparator_only_drops_the_entry(parser, bucket):
    parsed = parser.parse({'color__between': 'x', 'material': 'wood'}, bucket)
    assert parsed.main == ["\"buckets\".\"material\" = 'wood'"]


def test_null_semantics(parser, bucket):
    assert parser.parse({'color': None}, bucket).main == ['"buckets"."color" IS NULL']
    assert parser.parse({'color__not': None}, bucket).main == ['"buckets"."color" IS NOT NULL']
    assert parser.parse({'color__not_null': 'ignored'}, bucket).main == ['"buckets"."color" IS NOT NULL']
    assert parser.parse({'color__is_null': True}, bucket).main == ['"buckets"."color" IS NULL']


def test_range_values(parser):
    marble = schema.get_meta(Marble)
    main = parser.parse({'radius': Between(3, 9)}, marble).main
    assert '"marbles"."radius" >= 3' in main
    assert '"marbles"."radius" <= 9' in main
    main = parser.parse({'radius': range(1, 5)}, marble).main
    assert '"marbles"."radius" >= 1' in main and '"marbles"."radius" <= 4' in main
    assert 'FALSE' in parser.parse({'radius': range(0)}, marble).main


def test_list_value_with_is_and_not(parser, bucket):
    assert parser.parse({'color': ['red', 'blue']}, bucket).main == ["\"buckets\".\"color\" IN ('red','blue')"]
    assert parser.parse({'color__not': ('red',)}, bucket).main == ["\"buckets\".\"color\" NOT IN ('red')"]


@pytest.mark.parametrize('key,value,expected', [
    ('used', True, ['"buckets"."used" IS TRUE']),
    ('used', 'f', ['"buckets"."used" IS FALSE']),
    ('used', 'yes', ['"buckets"."used" IS TRUE']),
    ('used', 0, ['"buckets"."used" IS FALSE']),
    ('used__not', False, ['"buckets"."used" IS NOT FALSE']),
    ('used', 'maybe', []),
    ('used__gt', True, []),
    ('used__is_null', None, ['"buckets"."used" IS NULL']),
])
def test_boolean_columns(parser, bucket, key, value, expected):
    assert parser.parse({key: value}, bucket).main == expected


def test_injection_attempt_stays_a_literal(parser, bucket):
    parsed = parser.parse({'color': "x' OR '1'='1"}, bucket)
    assert parsed.main == ["\"buckets\".\"color\" = 'x'' OR ''1''=''1'"]


@pytest.mark.parametrize('raw,expected', [
    ('age', ('age', 'ASC')),
    ('age,desc', ('age', 'DESC')),
    (['age', 'BOGUS'], ('age', 'ASC')),
    (['age'], ('age', 'ASC')),
    (['age', 'DESC', 'extra'], ('age', 'DESC')),
    (42, ('', 'ASC')),
    (None, ('', 'ASC')),
])
def test_normalize_order(raw, expected):
    assert normalize_order(raw) == expected


def test_order_on_a_column(parser, bucket):
    assert parser.parse({'__order': 'color,DESC'}, bucket).main_order == '"buckets"."color" DESC'
    assert parser.parse({'__order': ['color', 'sideways']}, bucket).main_order == '"buckets"."color" ASC'


def test_order_on_unknown_field_is_dropped(parser, bucket):
    assert parser.parse({'__order': 'nope,DESC'}, bucket).main_order is None
    assert parser.parse({'__order': 7}, bucket).main_order is None


def test_custom_order_with_positional_params(parser):
    person = schema.get_meta(Person)
    parsed = parser.parse({'__order': 'age_distance', '__params': [30]}, person)
    assert parsed.main_order == "(abs(\"people\".age - '30')) ASC"


def test_custom_order_with_named_params(parser):
    person = schema.get_meta(Person)
    parsed = parser.parse({'__order': ['named_first', 'DESC'], '__params': {'name': "O'Hara"}}, person)
    assert parsed.main_order == "(CASE WHEN \"people\".name = 'O''Hara' THEN 0 ELSE 1 END) DESC"


def test_custom_order_missing_param_is_empty_string(parser):
    person = schema.get_meta(Person)
    parsed = parser.parse({'__order': 'age_distance'}, person)
    assert parsed.main_order == "(abs(\"people\".age - '')) ASC"


def test_custom_order_without_placeholders(parser):
    person = schema.get_meta(Person)
    assert parser.parse({'__order': 'name_length'}, person).main_order == '(length("people".name)) ASC'


def test_belongs_to_filters_and_order(parser, bucket):
    parsed = parser.parse({'person': {'name': 'Alice', '__order': 'age,DESC'}}, bucket)
    assert parsed.belongs_to == {'person': ["\"person\".\"name\" = 'Alice'"]}
    assert parsed.belongs_to_order == {'person': '"person"."age" DESC'}


def test_has_many_filters_and_order(parser):
    person = schema.get_meta(Person)
    parsed = parser.parse({'buckets': {'color__in': ['red'], '__order': ['color', 'DESC']}}, person)
    assert parsed.has_many == {'buckets': ["\"__buckets\".\"color\" IN ('red')"]}
    assert parsed.has_many_order == {'buckets': '"__buckets"."color" DESC'}


def test_nested_filters_cannot_reach_further_relations(parser):
    person = schema.get_meta(Person)
    with pytest.raises(UnsupportedFilter) as exc:
        parser.parse({'buckets': {'marbles': {}}}, person)
    assert exc.value.key == 'marbles'


def test_nested_custom_order_is_not_resolved(parser, bucket):
    parsed = parser.parse({'person': {'__order': 'name_length'}}, bucket)
    assert parsed.belongs_to_order == {'person': None}


def test_relation_value_must_be_a_mapping(parser, bucket):
    with pytest.raises(UnsupportedFilter):
        parser.parse({'person': 'Alice'}, bucket)


def test_relation_key_with_comparator_is_skipped(parser, bucket):
    parsed = parser.parse({'person__is': 1}, bucket)
    assert parsed.main == []
    assert parsed.belongs_to == {}


def test_array_columns(parser):
    pet = schema.get_meta(Pet)
    assert parser.parse({'nicknames': 'rexy'}, pet).main == ["'rexy' = ANY(\"peoples_pets\".\"nicknames\")"]
    assert parser.parse({'nicknames__in': ['a', 'b']}, pet).main == [
        "\"peoples_pets\".\"nicknames\" @> ARRAY['a','b']::VARCHAR(50)[]"
    ]
    assert parser.parse({'lucky_numbers__intersects': [3, 4]}, pet).main == [
        '"peoples_pets"."lucky_numbers" && ARRAY[3,4]::INTEGER[]'
    ]


def test_list_value_on_array_column_means_containment(parser):
    pet = schema.get_meta(Pet)
    assert parser.parse({'lucky_numbers': [3, 7]}, pet).main == [
        '"peoples_pets"."lucky_numbers" @> ARRAY[3,7]::INTEGER[]'
    ]
    assert parser.parse({'lucky_numbers__not': [3]}, pet).main == [
        'NOT "peoples_pets"."lucky_numbers" @> ARRAY[3]::INTEGER[]'
    ]

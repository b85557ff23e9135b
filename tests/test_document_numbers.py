from datetime import datetime, timezone

import pytest

from stockledger.utils.document_numbers import (
    generate_document_number,
    parse_document_number,
    validate_document_number,
)


def test_number_layout():
    number = generate_document_number('transfer', when=datetime(2026, 1, 14, tzinfo=timezone.utc), entity_id=37)

    prefix, stamp, suffix = number.split('-')
    assert prefix == 'TRF'
    assert stamp == '20260114'
    assert len(suffix) == 6
    assert suffix.startswith('11')


def test_parse_round_trip():
    number = generate_document_number('landed_cost')
    parsed = parse_document_number(number)

    assert parsed['prefix'] == 'LC'
    assert parsed['document_type'] == 'landed_cost'
    assert validate_document_number(number)


def test_unknown_type_is_refused():
    with pytest.raises(ValueError):
        generate_document_number('invoice')


@pytest.mark.parametrize('number', ['', 'ADJ-2026-XY', 'ZZZ-20260101-ABCDEF', 'ADJ-2026010A-ABCDEF'])
def test_invalid_numbers(number):
    assert not validate_document_number(number)

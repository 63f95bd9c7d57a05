"""Unit tests for the Reading model's JSON handling."""

from __future__ import annotations

import json

from models.reading import Reading

_CORE_DATA_PAYLOAD = (
    '{"id":"5d4b5e2a-1b7b-4a36-a0a1-1d8f4e2b9c11","created":1559915580000,'
    '"origin":1559915579998,"device":"Random-Integer-Device","name":"RandomValue_Int8",'
    '"value":"-54","valueType":"Int8","uomLabel":"C","labels":["temperature","lab-2"]}'
)


def test_decode_maps_camel_case_fields() -> None:
    reading = Reading.model_validate_json(_CORE_DATA_PAYLOAD)

    assert reading.id == "5d4b5e2a-1b7b-4a36-a0a1-1d8f4e2b9c11"
    assert reading.device == "Random-Integer-Device"
    assert reading.name == "RandomValue_Int8"
    assert reading.value == "-54"
    assert reading.value_type == "Int8"
    assert reading.uom_label == "C"
    assert reading.labels == ["temperature", "lab-2"]
    assert reading.created == 1559915580000
    assert reading.pushed == 0


def test_encode_preserves_only_present_fields() -> None:
    reading = Reading.model_validate_json(_CORE_DATA_PAYLOAD)

    assert reading.to_payload() == json.loads(_CORE_DATA_PAYLOAD)


def test_round_trip_yields_equal_value() -> None:
    reading = Reading(
        id="r-1",
        device="thermostat 7",
        name="Temperature",
        value="21.5",
        uom_label="degC",
        labels=["hvac"],
        value_type="Float64",
        created=1700000000000,
        binary_value="AAEC",
        media_type="application/octet-stream",
    )

    assert Reading.model_validate_json(json.dumps(reading.to_payload())) == reading


def test_zero_value_encodes_to_empty_object() -> None:
    assert Reading().to_payload() == {}


def test_unknown_fields_are_kept() -> None:
    reading = Reading.model_validate_json('{"id":"r-2","tags":{"site":"north"}}')

    assert reading.id == "r-2"
    assert reading.model_extra == {"tags": {"site": "north"}}

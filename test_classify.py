"""Tests for the response classifier."""

from esri_disco.classify import ServiceShape, classify, primary


def shapes(body):
    return [c.shape for c in classify(body)]


def test_services_listing():
    body = {"services": [
        {"name": "Basis/Kart", "type": "MapServer"},
        {"name": "Basis/Veg", "type": "FeatureServer"},
        {"name": "Geocode", "type": "GeocodeServer"},
    ]}
    results = classify(body)
    assert shapes(body) == [ServiceShape.SERVICES]
    assert len(results[0].payload) == 3
    assert results[0].payload[1] == {"name": "Basis/Veg", "type": "FeatureServer"}


def test_folders_do_not_suppress_services():
    body = {"folders": ["Basis", "Utilities"], "services": [{"name": "A", "type": "MapServer"}]}
    results = classify(body)
    assert shapes(body) == [ServiceShape.FOLDERS, ServiceShape.SERVICES]
    assert results[0].payload == ["Basis", "Utilities"]
    assert primary(results).shape is ServiceShape.SERVICES


def test_folders_only_is_not_raw_json():
    assert shapes({"folders": ["Basis"], "services": [], "currentVersion": 11.1}) == [ServiceShape.FOLDERS]


def test_layers_listing_with_tables():
    body = {
        "capabilities": "Query,Create",
        "layers": [{"id": 0, "name": "Punkter", "type": "Feature Layer", "minScale": 0}],
        "tables": [{"id": 5, "name": "Logg"}],
    }
    result = primary(classify(body))
    assert result.shape is ServiceShape.LAYERS
    assert result.payload["capabilities"] == "Query,Create"
    assert result.payload["layers"] == [{"id": 0, "name": "Punkter", "type": "Feature Layer"}]
    assert result.payload["tables"] == [{"id": 5, "name": "Logg"}]


def test_layers_take_precedence_over_type():
    body = {"layers": [{"id": 1, "name": "x", "type": "Feature Layer"}], "type": "Table"}
    assert shapes(body) == [ServiceShape.LAYERS]


def test_table_layer():
    body = {"type": "Table", "capabilities": "Query", "fields": [{"name": "a"}, {"name": "b"}]}
    result = primary(classify(body))
    assert result.shape is ServiceShape.TABLE_LAYER
    assert result.payload == {"capabilities": "Query", "fieldCount": 2}


def test_feature_layer_reports_field_count():
    fields = [
        {"name": "objectid", "type": "esriFieldTypeOID"},
        {"name": "navn", "type": "esriFieldTypeString", "alias": "Navn", "length": 50},
        {"name": "endret", "type": "esriFieldTypeDate"},
    ]
    body = {"type": "Feature Layer", "id": 3, "name": "Veger", "capabilities": "Query", "fields": fields}
    result = primary(classify(body))
    assert result.shape is ServiceShape.FEATURE_LAYER
    assert result.payload["id"] == 3
    assert result.payload["name"] == "Veger"
    assert len(result.payload["fields"]) == len(fields)
    assert result.payload["fields"][2].is_date
    assert result.payload["fields"][1].model_dump()["alias"] == "Navn"


def test_single_feature():
    body = {"feature": {"attributes": {"objectid": 1}, "geometry": {"x": 1, "y": 2}}}
    result = primary(classify(body))
    assert result.shape is ServiceShape.SINGLE_FEATURE
    assert result.payload == body["feature"]


def test_feature_without_attributes_is_raw():
    assert shapes({"feature": {"geometry": {}}}) == [ServiceShape.RAW_JSON]


def test_error_response():
    body = {"error": {"code": 499, "message": "Token Required", "details": []}}
    result = primary(classify(body))
    assert result.shape is ServiceShape.ERROR_RESPONSE
    assert result.payload == "Token Required"


def test_count_response_is_raw_json():
    body = {"count": 42}
    results = classify(body)
    assert shapes(body) == [ServiceShape.RAW_JSON]
    assert results[0].payload is body


def test_raw_json_is_idempotent():
    body = {"currentVersion": 10.91, "services": [], "layers": []}
    first = primary(classify(body))
    assert first.shape is ServiceShape.RAW_JSON
    again = primary(classify(first.payload))
    assert again.shape is ServiceShape.RAW_JSON
    assert again.payload == body


def test_non_dict_body_is_raw_json():
    assert shapes([1, 2, 3]) == [ServiceShape.RAW_JSON]


def test_classification_is_deterministic():
    body = {"folders": ["a"], "type": "Feature Layer", "fields": []}
    assert classify(body) == classify(body)


def test_feature_layer_with_odd_field_names():
    fields = [
        {"name": 5, "type": "esriFieldTypeInteger"},
        {"name": None, "type": None},
        {"name": "endret", "type": 7},
        "bare",
    ]
    result = primary(classify({"type": "Feature Layer", "id": 1, "name": "L", "fields": fields}))
    assert result.shape is ServiceShape.FEATURE_LAYER
    names = [f.name for f in result.payload["fields"]]
    assert names == ["5", "", "endret", "bare"]
    assert result.payload["fields"][2].type == "7"


def test_empty_error_object_is_error_response():
    result = primary(classify({"error": {}}))
    assert result.shape is ServiceShape.ERROR_RESPONSE
    assert result.payload == "unknown error"


def test_services_payload_keeps_every_entry():
    body = {"services": ["Basis/Kart", {"name": "Veg", "type": "MapServer"}, 42]}
    result = primary(classify(body))
    assert result.shape is ServiceShape.SERVICES
    assert len(result.payload) == len(body["services"])
    assert result.payload[0] == {"name": "Basis/Kart", "type": None}
    assert result.payload[2] == {"name": 42, "type": None}


def test_layers_payload_keeps_scalar_entries():
    body = {"layers": ["Punkter", {"id": 1, "name": "Linjer", "type": "Feature Layer"}], "tables": ["Logg"]}
    result = primary(classify(body))
    assert len(result.payload["layers"]) == 2
    assert result.payload["layers"][0] == {"id": None, "name": "Punkter", "type": None}
    assert result.payload["tables"] == [{"id": None, "name": "Logg"}]


def test_folders_and_layers_both_reported():
    body = {"folders": ["Basis"], "layers": [{"id": 0, "name": "Punkter", "type": "Feature Layer"}]}
    assert shapes(body) == [ServiceShape.FOLDERS, ServiceShape.LAYERS]

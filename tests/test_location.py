import json

from app.services import location_service


def test_known_zip(client):
    response = client.get("/api/location/zip/63105")
    assert response.status_code == 200
    assert response.json() == {"success": True, "zip": "63105", "city": "Clayton", "state": "MO"}


def test_malformed_zip(client):
    response = client.get("/api/location/zip/123")
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_ZIP"


def test_unknown_zip(client):
    response = client.get("/api/location/zip/99999")
    assert response.status_code == 404
    assert response.json()["code"] == "ZIP_NOT_FOUND"


def test_load_georef_file(tmp_path):
    path = tmp_path / "zips.json"
    path.write_text(json.dumps([
        {"zip_code": "2134", "usps_city": "Allston", "ste_name": "Massachusetts"},
        {"zip_code": "10001", "usps_city": "New York"},
        {"zip_code": "abcde", "usps_city": "Nowhere", "ste_name": "Nowhere"},
    ]))
    table = location_service.load_georef_file(str(path))
    assert table == {"02134": {"city": "Allston", "state": "Massachusetts"}}

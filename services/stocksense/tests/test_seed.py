from datetime import date

from stocksense.seed import DEFAULT_SEED_FILE, load_items, parse_row


def test_parse_row_converts_types():
    fields = parse_row({
        "code": "MCH-001", "description": " Forklift ", "vendor": "",
        "current_stock": "5", "allocated_stock": "0", "min_threshold": "5", "max_ceiling": "15",
        "warranty_end": "2030-01-01",
    })

    assert fields["description"] == "Forklift"
    assert fields["vendor"] is None
    assert fields["current_stock"] == 5
    assert fields["max_ceiling"] == 15
    assert fields["warranty_end"] == date(2030, 1, 1)


def test_default_catalogue_loads(service):
    assert load_items(service, DEFAULT_SEED_FILE) == {"created": 4, "skipped": 0}

    codes = [i.code for i in service.list_items()]
    assert codes == ["EQP-104", "MCH-001", "MCH-002", "STR-201"]
    assert service.get_item("EQP-104").max_ceiling == 8


def test_reloading_skips_existing_codes(service, tmp_path):
    path = tmp_path / "items.csv"
    path.write_text(
        "code,description,current_stock,min_threshold,max_ceiling\n"
        "A-1,Drill,3,1,10\n"
        "A-2,Saw,0,,\n",
        encoding="utf-8",
    )

    assert load_items(service, path) == {"created": 2, "skipped": 0}
    assert load_items(service, path) == {"created": 0, "skipped": 2}
    assert (service.get_item("A-2").min_threshold, service.get_item("A-2").max_ceiling) == (5, 20)

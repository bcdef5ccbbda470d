import importlib


def test_services_package_imports():
    module = importlib.import_module("medtrack.services.schedule")
    assert hasattr(module, "ScheduleService")
    assert hasattr(module, "generate_schedule")


def test_dose_records_package_imports():
    module = importlib.import_module("medtrack.services.dose_records")
    assert hasattr(module, "BulkSlotRecorder")


def test_schemas_package_imports():
    module = importlib.import_module("medtrack.schemas")
    assert hasattr(module, "SlotBulkRecordRequest")

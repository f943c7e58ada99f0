import pytest

from findpi.scanner.oui_lookup import OuiClassifier, OuiEntry, build_oui_table


@pytest.fixture
def oui_table():
    """Small synthetic vendor table."""
    return build_oui_table([
        OuiEntry("aa:bb:cc", "Acme", "Computer"),
        OuiEntry("dc:a6:32", "Raspberry Pi Trading Ltd", "Raspberry Pi"),
        OuiEntry("00:11:32", "Synology Incorporated", "Storage/NAS"),
    ])


@pytest.fixture
def classifier(oui_table):
    return OuiClassifier(oui_table)

import config


def test_defaults_from_yaml():
    assert config.PROPERTY_VALUE == 500_000.0
    assert config.INSTALLMENTS_COUNT == 36
    assert config.CORRECTION_MODE == "CUB_NACIONAL"
    assert config.COMMISSION_RATE == 0.06
    assert 0 < config.RAPID_HORIZON_FRACTION < config.BALANCED_HORIZON_FRACTION <= 1


def test_missing_or_invalid_yaml(tmp_path):
    assert config._load_yaml(tmp_path / "absent.yaml") == {}
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    assert config._load_yaml(path) == {}

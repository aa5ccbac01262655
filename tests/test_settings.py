from config.settings import Settings, WebhookConfig, ZapiConfig, parse_extra_json, resolve_provider_config


def _settings(**kw):
    base = {
        "WHATSAPP_OUTBOUND_WEBHOOK_URL": "",
        "ZAPI_INSTANCE_ID": "",
        "ZAPI_INSTANCE_TOKEN": "",
    }
    base.update(kw)
    return Settings(_env_file=None, **base)


def test_webhook_takes_priority_over_zapi():
    s = _settings(
        WHATSAPP_OUTBOUND_WEBHOOK_URL="https://hooks.example.com/wa",
        ZAPI_INSTANCE_ID="inst",
        ZAPI_INSTANCE_TOKEN="tok",
    )
    cfg = resolve_provider_config(s)
    assert isinstance(cfg, WebhookConfig)
    assert cfg.auth_header_name == "Authorization"


def test_zapi_requires_id_and_token():
    assert resolve_provider_config(_settings(ZAPI_INSTANCE_ID="inst")) is None
    cfg = resolve_provider_config(_settings(ZAPI_INSTANCE_ID="inst", ZAPI_INSTANCE_TOKEN="tok"))
    assert isinstance(cfg, ZapiConfig)
    assert cfg.base_url == "https://api.z-api.io"


def test_nothing_configured():
    assert resolve_provider_config(_settings()) is None


def test_values_are_trimmed_and_blank_header_defaults():
    s = _settings(
        WHATSAPP_OUTBOUND_WEBHOOK_URL="  https://hooks.example.com/wa  ",
        WHATSAPP_OUTBOUND_AUTH_HEADER="   ",
    )
    cfg = resolve_provider_config(s)
    assert cfg.url == "https://hooks.example.com/wa"
    assert cfg.auth_header_name == "Authorization"


def test_extra_json_is_tolerant():
    assert parse_extra_json('{"channel": "crm"}') == {"channel": "crm"}
    assert parse_extra_json("{not json") == {}
    assert parse_extra_json("[1, 2]") == {}
    assert parse_extra_json("") == {}

from commentary.settings import Settings, load_settings


def test_parent_url_is_normalised():
	settings = Settings(parent_app_url="https://parent.example/ ", obs_enabled=False)
	assert settings.parent_app_url == "https://parent.example"
	assert Settings(parent_app_url="", obs_enabled=False).parent_app_url is None


def test_smtp_configured_follows_host():
	assert not Settings(obs_enabled=False).smtp_configured()
	assert load_settings(smtp_host="smtp.example.com", obs_enabled=False).smtp_configured()


def test_only_used_helpers_are_exposed():
	settings = Settings(obs_enabled=False)
	assert not hasattr(settings, "is_prod")

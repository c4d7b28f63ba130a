from rancher_tools.base import URL_HEADER, ToolRequest, ToolsBase

URL = "https://rancher.example.com"


def test_configured_url_wins_over_header():
    tools = ToolsBase(object(), URL, False)
    request = ToolRequest(headers={URL_HEADER: "https://other.example.com"})
    assert tools.rancher_url_for(request) == URL


def test_empty_configured_url_falls_back_to_header():
    tools = ToolsBase(object(), "", False)
    assert tools.rancher_url_for(ToolRequest(headers={URL_HEADER: URL})) == URL


def test_header_lookup_ignores_case():
    tools = ToolsBase(object(), "", False)
    request = ToolRequest(headers={URL_HEADER.upper(): URL})
    assert tools.rancher_url_for(request) == URL


def test_missing_header_gives_empty_url():
    tools = ToolsBase(object(), "", False)
    assert tools.rancher_url_for(ToolRequest()) == ""
    assert tools.rancher_url_for(None) == ""


def test_constructor_keeps_settings():
    client = object()
    tools = ToolsBase(client, URL, True)
    assert tools.client is client
    assert tools.rancher_url == URL
    assert tools.read_only is True
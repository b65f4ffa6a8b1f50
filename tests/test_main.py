"""
Tests for the STDIO MCP protocol handler.
"""
import io
import json
from unittest.mock import patch

from main import handle_request, get_health, serve_stdio, ErrorCode


def call(dispatcher, method, params=None, id_=1):
    request = {"jsonrpc": "2.0", "id": id_, "method": method}
    if params is not None:
        request["params"] = params
    return handle_request(request, dispatcher)


def tool_payload(response):
    return json.loads(response['result']['content'][0]['text'])


class TestMCPProtocol:
    """Tests for MCP protocol handling."""

    def test_initialize(self, dispatcher):
        response = call(dispatcher, "initialize", {})

        assert response['jsonrpc'] == "2.0"
        assert response['id'] == 1
        assert response['result']['protocolVersion'] == "2024-11-05"
        assert response['result']['serverInfo']['name'] == "pubfeed-mcp"
        assert 'tools' in response['result']['capabilities']

    def test_initialized_notification_has_no_response(self, dispatcher):
        request = {"jsonrpc": "2.0", "method": "notifications/initialized"}
        assert handle_request(request, dispatcher) is None

    def test_tools_list_is_registry(self, dispatcher):
        response = call(dispatcher, "tools/list")
        assert response['result']['tools'] == dispatcher.list_tools()

    def test_ping_reports_health(self, dispatcher):
        response = call(dispatcher, "ping")
        assert response['result']['status'] == "healthy"
        assert 'timestamp' in response['result']

    def test_unknown_method(self, dispatcher):
        response = call(dispatcher, "unknown/method", {})
        assert response['error']['code'] == ErrorCode.METHOD_NOT_FOUND == -32601

    def test_missing_method_invalid_request(self, dispatcher):
        response = handle_request({"jsonrpc": "2.0", "id": 9}, dispatcher)
        assert response['error']['code'] == -32600
        assert response['id'] == 9


class TestToolsCall:
    """Tests for tools/call error translation and results."""

    def test_list_articles(self, dispatcher):
        response = call(dispatcher, "tools/call",
                        {"name": "list_articles", "arguments": {"topic": "governance"}})

        payload = tool_payload(response)
        assert payload['total'] == 1
        assert payload['articles'][0]['title'] == "Best Practices for AI Governance"

    def test_unknown_tool(self, dispatcher):
        response = call(dispatcher, "tools/call", {"name": "delete_everything", "arguments": {}})
        assert response['error']['code'] == -32601

    def test_not_found_is_invalid_params(self, dispatcher):
        response = call(dispatcher, "tools/call",
                        {"name": "read_article", "arguments": {"articleId": "a4"}})
        assert response['error']['code'] == -32602
        assert "not found" in response['error']['message'].lower()

    def test_invalid_arguments(self, dispatcher):
        response = call(dispatcher, "tools/call",
                        {"name": "list_articles", "arguments": {"limit": "ten"}})
        assert response['error']['code'] == -32602

    def test_search_variant_fetch_not_found(self, search_dispatcher):
        response = call(search_dispatcher, "tools/call", {"name": "fetch", "arguments": {"id": "a4"}})
        assert response['error']['code'] == -32602

    @patch('queries.list_topics', side_effect=RuntimeError("database password leaked"))
    def test_internal_error(self, mock_topics, dispatcher):
        response = call(dispatcher, "tools/call", {"name": "list_topics", "arguments": {}})

        assert response['error']['code'] == -32603
        assert "password" not in response['error']['message']

    @patch('queries.extract_full_text', return_value="Body")
    def test_read_article(self, mock_extract, dispatcher):
        response = call(dispatcher, "tools/call",
                        {"name": "read_article", "arguments": {"title": "roi"}})

        article = tool_payload(response)['article']
        assert article['id'] == "a2"
        assert article['content'] == "Body"


class TestGetHealth:
    """Tests for the health payload."""

    def test_health_structure(self):
        health = get_health()
        assert health['status'] == 'healthy'
        assert 'timestamp' in health


class TestServeStdio:
    """Tests for the line-oriented STDIO loop."""

    def test_round_trip(self, dispatcher, monkeypatch):
        lines = "\n".join([
            json.dumps({"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}}),
            json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"}),
            "",
            "{not json",
            json.dumps({"jsonrpc": "2.0", "id": 2, "method": "tools/list"}),
        ]) + "\n"

        stdout = io.TextIOWrapper(io.BytesIO(), encoding='utf-8')
        monkeypatch.setattr('sys.stdin', io.StringIO(lines))
        monkeypatch.setattr('sys.stdout', stdout)

        written = []
        with patch('main._write', side_effect=written.append):
            serve_stdio(dispatcher)

        assert [m.get('id') for m in written] == [1, None, 2]
        assert written[1]['error']['code'] == -32700
        assert len(written[2]['result']['tools']) == 4

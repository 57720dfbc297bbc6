from unittest import mock

import requests

from pr_pickup_agent.ding import DingAlertSink


def fake_response(status_code, content=b"RIFF"):
    response = mock.Mock()
    response.status_code = status_code
    response.content = content
    return response


def test_plays_fetched_audio(settings):
    played = []
    sink = DingAlertSink(settings, player=played.append)
    with mock.patch.object(sink.requests, "get", return_value=fake_response(200)) as get:
        sink.alert()

    get.assert_called_once_with("http://example.com/ding.wav", timeout=10.0)
    assert played == [b"RIFF"]


def test_uses_current_ding_url(settings):
    sink = DingAlertSink(settings, player=lambda audio: None)
    settings.ding_url = "http://example.com/other.mp3"
    with mock.patch.object(sink.requests, "get", return_value=fake_response(200)) as get:
        sink.alert()
    assert get.call_args[0][0] == "http://example.com/other.mp3"


def test_http_error_is_logged_not_played(settings, caplog):
    played = []
    sink = DingAlertSink(settings, player=played.append)
    with mock.patch.object(sink.requests, "get", return_value=fake_response(404)):
        sink.alert()
    assert played == []
    assert "HTTP 404" in caplog.text


def test_network_error_is_logged(settings, caplog):
    played = []
    sink = DingAlertSink(settings, player=played.append)
    with mock.patch.object(sink.requests, "get", side_effect=requests.ConnectionError("refused")):
        sink.alert()
    assert played == []
    assert "Error fetching the audio file" in caplog.text


def test_default_player_rings_bell_without_download(settings, capsys):
    sink = DingAlertSink(settings)
    with mock.patch.object(sink.requests, "get") as get:
        sink.alert()

    get.assert_not_called()
    assert capsys.readouterr().out == "\a"

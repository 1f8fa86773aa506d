from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from flight_checker.telegram_api import (
    EditMessageText,
    GetChatHistory,
    GetMessage,
    SendMessage,
    parse_history,
    parse_message_id,
    parse_message_text,
    parse_retry_after,
    thread_param,
)


def test_thread_id_omitted_for_default_and_empty():
    assert thread_param(None) is None
    assert thread_param("") is None
    assert thread_param("1") is None
    assert thread_param("42") == "42"

    assert "message_thread_id" not in SendMessage("c", "hi", thread_id="1").to_payload()
    assert "message_thread_id" not in SendMessage("c", "hi").to_payload()
    assert SendMessage("c", "hi", thread_id="42").to_payload()["message_thread_id"] == "42"
    assert "message_thread_id" not in EditMessageText("c", "5", "hi", "").to_payload()
    assert GetChatHistory("c", 100, "42").to_payload() == {
        "chat_id": "c",
        "limit": 100,
        "message_thread_id": "42",
    }


def test_send_message_payload():
    markup = InlineKeyboardMarkup(
        [[InlineKeyboardButton("Book", url="https://www.aviasales.ru/x")]]
    )
    payload = SendMessage("-100", "<b>hi</b>", reply_markup=markup).to_payload()

    assert SendMessage.method == "sendMessage"
    assert payload["chat_id"] == "-100"
    assert payload["text"] == "<b>hi</b>"
    assert payload["parse_mode"] == "HTML"
    assert payload["disable_web_page_preview"] is True
    assert payload["reply_markup"] == {
        "inline_keyboard": [[{"text": "Book", "url": "https://www.aviasales.ru/x"}]]
    }


def test_edit_and_get_payloads():
    edit = EditMessageText("-100", "77", "new text", "42").to_payload()
    assert EditMessageText.method == "editMessageText"
    assert edit["message_id"] == "77"
    assert edit["text"] == "new text"
    assert edit["message_thread_id"] == "42"
    assert "reply_markup" not in edit

    assert GetMessage("-100", "77").to_payload() == {"chat_id": "-100", "message_id": "77"}


def test_parse_responses():
    assert parse_message_id({"ok": True, "result": {"message_id": 321}}) == "321"
    assert parse_message_id({"ok": True, "result": {}}) is None
    assert parse_message_id({"ok": True, "result": True}) is None
    assert parse_history({"result": [{"message_id": 1}, {"message_id": 2}, {}]}) == ["1", "2"]
    assert parse_history({"result": None}) == []
    assert parse_message_text({"result": {"text": "hello"}}) == "hello"
    assert parse_message_text({"result": {"photo": []}}) is None


def test_parse_retry_after():
    assert parse_retry_after({"parameters": {"retry_after": 3.5}}) == 3.5
    assert parse_retry_after({"parameters": {"retry_after": 2}}) == 2.0
    assert parse_retry_after({"parameters": {}}) is None
    assert parse_retry_after({"description": "Too Many Requests"}) is None
    assert parse_retry_after({"parameters": {"retry_after": "soon"}}) is None
    assert parse_retry_after(None) is None

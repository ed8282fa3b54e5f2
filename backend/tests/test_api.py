"""HTTP tests for the chat, test and material endpoints."""

import json
from uuid import uuid4

import pytest

from conftest import FakeExtractor, make_question, material_reply, questions_reply
from studybuddy.api.deps import create_access_token
from studybuddy.errors import GenerationFailed
from studybuddy.services.pdf_processor import ExtractionResult
from studybuddy.services.s3 import BlobStoreError


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


# =============================================================================
# AUTHENTICATION
# =============================================================================


class TestAuthentication:
    @pytest.mark.parametrize("path", ["/chat/chats", "/tests/", "/materials/"])
    async def test_missing_token_is_unauthenticated(self, client, path):
        response = await client.get(path)

        assert response.status_code == 401
        assert response.json()["kind"] == "unauthenticated"
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_invalid_token_is_unauthenticated(self, client):
        response = await client.get("/chat/chats", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401
        assert response.json() == {"kind": "unauthenticated", "message": "Could not validate credentials"}

    async def test_cookie_token_is_accepted(self, client, owner):
        client.cookies.set("access_token", create_access_token(owner))
        response = await client.get("/chat/chats")
        assert response.status_code == 200


# =============================================================================
# CHAT
# =============================================================================


class TestChatEndpoints:
    async def test_chat_flow(self, client, auth_headers, gateway):
        gateway.reply = "Velocity is the rate of change of displacement."

        created = await client.post("/chat/chats", json={"subject": "physics"}, headers=auth_headers)
        assert created.status_code == 201
        chat_id = created.json()["id"]
        assert created.json()["title"] == "New Chat"

        turn = await client.post(
            f"/chat/chats/{chat_id}/messages",
            json={"message": "What is velocity in kinematics?", "language": "english"},
            headers=auth_headers,
        )
        assert turn.status_code == 200
        body = turn.json()
        assert body["user_message"]["content"] == "What is velocity in kinematics?"
        assert body["assistant_message"]["content"] == gateway.reply
        assert body["chat"]["title"] == "What is velocity in kinematics..."

        detail = await client.get(f"/chat/chats/{chat_id}", headers=auth_headers)
        assert [m["role"] for m in detail.json()["messages"]] == ["user", "assistant"]

        listing = await client.get("/chat/chats", headers=auth_headers)
        assert listing.json()["total"] == 1

    async def test_unknown_chat_is_not_found(self, client, auth_headers):
        response = await client.post(
            f"/chat/chats/{uuid4()}/messages", json={"message": "hi"}, headers=auth_headers
        )

        assert response.status_code == 404
        assert response.json() == {"kind": "not_found", "message": "Chat not found"}

    async def test_other_owners_chat_is_hidden(self, client, auth_headers):
        created = await client.post("/chat/chats", json={}, headers=auth_headers)
        stranger = {"Authorization": f"Bearer {create_access_token(uuid4())}"}

        response = await client.get(f"/chat/chats/{created.json()['id']}", headers=stranger)
        assert response.status_code == 404

    async def test_generation_failure_is_bad_gateway(self, client, auth_headers, gateway):
        gateway.reply = GenerationFailed("Model API error: 529", upstream_status=529)
        created = await client.post("/chat/chats", json={}, headers=auth_headers)
        chat_id = created.json()["id"]

        response = await client.post(
            f"/chat/chats/{chat_id}/messages", json={"message": "hi"}, headers=auth_headers
        )
        assert response.status_code == 502
        assert response.json()["kind"] == "generation_failed"

        detail = await client.get(f"/chat/chats/{chat_id}", headers=auth_headers)
        assert [m["role"] for m in detail.json()["messages"]] == ["user"]
        assert detail.json()["title"] == "New Chat"

    async def test_empty_message_is_rejected(self, client, auth_headers):
        created = await client.post("/chat/chats", json={}, headers=auth_headers)
        response = await client.post(
            f"/chat/chats/{created.json()['id']}/messages", json={"message": ""}, headers=auth_headers
        )
        assert response.status_code == 422
        assert response.json()["kind"] == "invalid_request"
        assert "message" in response.json()["message"]

    async def test_delete_chat(self, client, auth_headers):
        created = await client.post("/chat/chats", json={}, headers=auth_headers)
        chat_id = created.json()["id"]

        response = await client.delete(f"/chat/chats/{chat_id}", headers=auth_headers)
        assert response.status_code == 204

        response = await client.get(f"/chat/chats/{chat_id}", headers=auth_headers)
        assert response.status_code == 404


# =============================================================================
# TESTS AND ATTEMPTS
# =============================================================================


class TestMockTestEndpoints:
    async def test_generate_attempt_and_stats(self, client, auth_headers, gateway):
        gateway.reply = questions_reply(15)

        generated = await client.post(
            "/tests/generate",
            json={"subject": "physics", "difficulty": "medium"},
            headers=auth_headers,
        )
        assert generated.status_code == 201
        test = generated.json()
        assert test["total_questions"] == 15
        assert test["duration_minutes"] == 30
        assert len(test["questions"]) == 15

        answers = ["B"] * 10 + ["A"] * 5
        attempt = await client.post(
            f"/tests/{test['id']}/attempts",
            json={"answers": answers, "time_taken_minutes": 25},
            headers=auth_headers,
        )
        assert attempt.status_code == 201
        assert attempt.json()["correct_answers"] == 10
        assert attempt.json()["score"] == 67

        stats = await client.get("/tests/attempts/stats", headers=auth_headers)
        assert stats.json() == {"attempt_count": 1, "average_score": 67, "strongest_subject": "physics"}

    async def test_malformed_questions_are_bad_gateway(self, client, auth_headers, gateway):
        broken = make_question()
        del broken["options"]
        gateway.reply = json.dumps({"questions": [broken]})

        response = await client.post(
            "/tests/generate",
            json={"subject": "chemistry", "difficulty": "easy"},
            headers=auth_headers,
        )
        assert response.status_code == 502
        assert response.json()["kind"] == "malformed_generation"

        listing = await client.get("/tests/", headers=auth_headers)
        assert listing.json()["total"] == 0

    async def test_attempts_survive_test_deletion(self, client, auth_headers, gateway):
        gateway.reply = questions_reply(2)
        generated = await client.post(
            "/tests/generate",
            json={"subject": "mathematics", "difficulty": "hard", "question_count": 2},
            headers=auth_headers,
        )
        test_id = generated.json()["id"]
        await client.post(f"/tests/{test_id}/attempts", json={"answers": ["B", "B"]}, headers=auth_headers)

        deleted = await client.delete(f"/tests/{test_id}", headers=auth_headers)
        assert deleted.status_code == 204

        attempts = (await client.get("/tests/attempts", headers=auth_headers)).json()["attempts"]
        assert len(attempts) == 1
        assert attempts[0]["score"] == 100
        assert attempts[0]["test_title"] is None

    async def test_too_many_answers_is_unprocessable(self, client, auth_headers, gateway):
        gateway.reply = questions_reply(1)
        generated = await client.post(
            "/tests/generate",
            json={"subject": "physics", "difficulty": "easy", "question_count": 1},
            headers=auth_headers,
        )

        response = await client.post(
            f"/tests/{generated.json()['id']}/attempts",
            json={"answers": ["B", "C"]},
            headers=auth_headers,
        )
        assert response.status_code == 422
        assert response.json() == {
            "kind": "invalid_request",
            "message": "Received 2 answers for a test with 1 questions",
        }

    async def test_invalid_subject_is_rejected(self, client, auth_headers):
        response = await client.post(
            "/tests/generate", json={"subject": "biology", "difficulty": "easy"}, headers=auth_headers
        )
        assert response.status_code == 422
        body = response.json()
        assert set(body) == {"kind", "message"}
        assert body["kind"] == "invalid_request"
        assert "subject" in body["message"]


# =============================================================================
# STUDY MATERIALS
# =============================================================================


class TestMaterialEndpoints:
    async def test_upload_url_is_scoped_to_owner(self, client, auth_headers, owner):
        response = await client.post(
            "/materials/upload-url", json={"filename": "optics.pdf"}, headers=auth_headers
        )

        assert response.status_code == 200
        file_path = response.json()["file_path"]
        assert file_path.startswith(f"users/{owner}/materials/")
        assert file_path.endswith("_optics.pdf")

    async def test_non_pdf_upload_url_is_rejected(self, client, auth_headers):
        response = await client.post(
            "/materials/upload-url", json={"filename": "notes.docx"}, headers=auth_headers
        )
        assert response.status_code == 422
        assert response.json()["kind"] == "invalid_request"

    async def test_ingest_list_and_delete(self, client, auth_headers, owner, gateway, blob_store):
        gateway.reply = material_reply()
        file_path = f"users/{owner}/materials/{uuid4()}_laws_of_motion.pdf"
        blob_store.objects[file_path] = b"%PDFNewton's laws of motion"

        ingested = await client.post(
            "/materials/ingest",
            json={"file_path": file_path, "file_name": "laws_of_motion.pdf", "subject": "physics"},
            headers=auth_headers,
        )
        assert ingested.status_code == 201
        material = ingested.json()
        assert material["title"] == "laws of motion"
        assert len(material["flashcards"]) == 2
        assert "Newton's laws of motion" in gateway.payloads[0].messages[0]["content"]

        listing = await client.get("/materials/", headers=auth_headers)
        assert listing.json()["total"] == 1

        deleted = await client.delete(f"/materials/{material['id']}", headers=auth_headers)
        assert deleted.status_code == 204
        assert blob_store.deleted == [file_path]

        response = await client.get(f"/materials/{material['id']}", headers=auth_headers)
        assert response.status_code == 404

    async def test_ingest_fallback_when_reply_unusable(self, client, auth_headers, owner, gateway, blob_store):
        gateway.reply = "I could not read that."
        file_path = f"users/{owner}/materials/{uuid4()}_notes.pdf"
        blob_store.objects[file_path] = b"%PDFsome text"

        response = await client.post(
            "/materials/ingest",
            json={"file_path": file_path, "file_name": "notes.pdf"},
            headers=auth_headers,
        )
        assert response.status_code == 201
        assert response.json()["flashcards"] == []
        assert response.json()["summary"].startswith("Study material processed successfully")

    async def test_ingest_of_foreign_key_is_not_found(self, client, auth_headers, gateway):
        response = await client.post(
            "/materials/ingest",
            json={"file_path": f"users/{uuid4()}/materials/x.pdf", "file_name": "x.pdf"},
            headers=auth_headers,
        )
        assert response.status_code == 404
        assert gateway.payloads == []

    async def test_ingest_of_non_pdf_is_bad_request(self, client, auth_headers, owner, gateway, blob_store):
        file_path = f"users/{owner}/materials/{uuid4()}_fake.pdf"
        blob_store.objects[file_path] = b"plain text"

        response = await client.post(
            "/materials/ingest",
            json={"file_path": file_path, "file_name": "fake.pdf"},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json() == {
            "kind": "invalid_document",
            "message": "The uploaded file is not a valid PDF",
        }
        assert gateway.payloads == []

    async def test_unreadable_pdf_text_is_bad_request(self, client, auth_headers, owner, blob_store, monkeypatch):
        async def failing_extract(self, pdf_bytes):
            return ExtractionResult(text="", page_count=0, error="cannot decode page 1")

        monkeypatch.setattr(FakeExtractor, "extract_text", failing_extract)
        file_path = f"users/{owner}/materials/{uuid4()}_scan.pdf"
        blob_store.objects[file_path] = b"%PDFscanned"

        response = await client.post(
            "/materials/ingest",
            json={"file_path": file_path, "file_name": "scan.pdf"},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json() == {
            "kind": "invalid_document",
            "message": "Text could not be extracted from the PDF",
        }

    async def test_missing_upload_is_storage_failure(self, client, auth_headers, owner, gateway):
        response = await client.post(
            "/materials/ingest",
            json={"file_path": f"users/{owner}/materials/{uuid4()}_gone.pdf", "file_name": "gone.pdf"},
            headers=auth_headers,
        )
        assert response.status_code == 500
        assert set(response.json()) == {"kind", "message"}
        assert response.json()["kind"] == "storage_failed"
        assert gateway.payloads == []

    async def test_failed_blob_delete_keeps_material(self, client, auth_headers, owner, gateway, blob_store, monkeypatch):
        gateway.reply = material_reply()
        file_path = f"users/{owner}/materials/{uuid4()}_optics.pdf"
        blob_store.objects[file_path] = b"%PDFlenses and mirrors"
        ingested = await client.post(
            "/materials/ingest",
            json={"file_path": file_path, "file_name": "optics.pdf"},
            headers=auth_headers,
        )
        material_id = ingested.json()["id"]

        async def failing_delete(file_key):
            raise BlobStoreError(f"access denied for {file_key}")

        monkeypatch.setattr(blob_store, "delete", failing_delete)

        response = await client.delete(f"/materials/{material_id}", headers=auth_headers)
        assert response.status_code == 500
        assert response.json()["kind"] == "storage_failed"

        still_there = await client.get(f"/materials/{material_id}", headers=auth_headers)
        assert still_there.status_code == 200


# =============================================================================
# FRAMEWORK ERRORS
# =============================================================================


class TestErrorShape:
    async def test_unknown_route_is_not_found(self, client):
        response = await client.get("/no-such-route")

        assert response.status_code == 404
        assert response.json() == {"kind": "not_found", "message": "Not Found"}

    async def test_wrong_method_is_rejected(self, client):
        response = await client.put("/health")

        assert response.status_code == 405
        assert response.json()["kind"] == "method_not_allowed"

    async def test_malformed_json_body(self, client, auth_headers):
        response = await client.post(
            "/tests/generate",
            content=b"{not json",
            headers={**auth_headers, "Content-Type": "application/json"},
        )

        assert response.status_code == 422
        assert set(response.json()) == {"kind", "message"}
        assert response.json()["kind"] == "invalid_request"

    async def test_stats_average_exact_percentages(self, client, auth_headers, gateway):
        gateway.reply = questions_reply(8)
        generated = await client.post(
            "/tests/generate",
            json={"subject": "physics", "difficulty": "easy", "question_count": 8},
            headers=auth_headers,
        )
        test_id = generated.json()["id"]
        for answers in (["B"], ["B", "B", "B"]):
            await client.post(f"/tests/{test_id}/attempts", json={"answers": answers}, headers=auth_headers)

        stats = (await client.get("/tests/attempts/stats", headers=auth_headers)).json()
        assert stats["attempt_count"] == 2
        assert stats["average_score"] == 25

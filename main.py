import argparse
import asyncio
import logging
from pathlib import Path

from pdfquiz.client import GenerationClient
from pdfquiz.config import Config
from pdfquiz.errors import QuizError, user_facing_message
from pdfquiz.interfaces import TextCLI
from pdfquiz.pipeline import build_pipeline
from pdfquiz.runner import QuizRunner
from pdfquiz.session import QuizSession
from pdfquiz.stores import LocalObjectStore, SqliteRowStore
from pdfquiz.uploads import upload_document

log = logging.getLogger("pdfquiz")


def row_store():
    return SqliteRowStore(Config.DB_PATH)


def find_document(document_id: str) -> dict:
    rows = row_store().select("documents", {"id": document_id})
    if not rows:
        raise SystemExit(f"Unknown document: {document_id}")
    return rows[0]


async def run_upload(args):
    path = Path(args.pdf_path)
    if not path.exists():
        raise SystemExit(f"File not found: {path}")
    document = await upload_document(
        LocalObjectStore(Config.STORAGE_DIR), row_store(), args.user,
        path.name, path.read_bytes(), "application/pdf",
    )
    print(f"Uploaded {document.file_name} as document {document.id}")


async def run_generate(args):
    document = find_document(args.document_id)
    if args.remote:
        count = await GenerationClient(args.remote).generate_quiz(document["file_path"], document["id"])
    else:
        count = await build_pipeline().generate_quiz(document["file_path"], document["id"])
    print(f"{count} questions generated successfully")


async def run_quiz(args):
    runner = QuizRunner(TextCLI(), QuizSession(row_store(), args.user))
    await runner.run(args.document_id)


async def run_history(args):
    runner = QuizRunner(TextCLI(), QuizSession(row_store(), args.user))
    await runner.show_history(args.document_id)


def run_server(args):
    import uvicorn
    uvicorn.run("pdfquiz.server:app", host=args.host, port=args.port)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="PDF Quiz Generator")
    sub = parser.add_subparsers(dest="command", required=True)

    upload = sub.add_parser("upload", help="Upload a PDF")
    upload.add_argument("pdf_path", type=str, help="Path to the PDF")
    upload.add_argument("--user", required=True, help="Owning user id")

    generate = sub.add_parser("generate", help="Generate questions for an uploaded PDF")
    generate.add_argument("document_id", type=str)
    generate.add_argument("--remote", nargs="?", const=Config.SERVICE_URL, default=None,
                          help="Call the generation service instead of running locally")

    quiz = sub.add_parser("quiz", help="Take the quiz for a document")
    quiz.add_argument("document_id", type=str)
    quiz.add_argument("--user", required=True)

    history = sub.add_parser("history", help="Show past attempts for a document")
    history.add_argument("document_id", type=str)
    history.add_argument("--user", required=True)

    serve = sub.add_parser("serve", help="Run the generation service")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()
    logging.basicConfig(
        level=Config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        run_server(args)
    else:
        commands = {
            "upload": run_upload,
            "generate": run_generate,
            "quiz": run_quiz,
            "history": run_history,
        }
        try:
            asyncio.run(commands[args.command](args))
        except QuizError as e:
            log.debug("Command failed", exc_info=True)
            raise SystemExit(user_facing_message(e))

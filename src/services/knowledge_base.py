from typing import Optional, List
from src.core.errors import InvalidInput, NotFound
from src.core.ids import new_id, utc_now
from src.core.logging import get_plain_logger
from src.models.schemas import KnowledgeEntry, LearnResult, ScoredEntry, SeedItem
from src.services.similarity import similarity, tokenize
from src.services.store import TABLES, Store, StoreSession

logger = get_plain_logger(__name__)

TABLE = "knowledge_base"


class KnowledgeBaseService:
    """
    Knowledge base of supervisor-taught Q&A pairs

    Matching and merging both compare the incoming text against stored
    QUESTIONS (never answers) with token-set Jaccard similarity.
    """

    def __init__(self, store: Store, merge_threshold: float = 0.90):
        self.store = store
        self.merge_threshold = merge_threshold

    def retrieve(self, query: str, k: int, min_score: float) -> List[ScoredEntry]:
        """
        Best matching entries for a query

        Args:
            query: Free text to match against stored questions
            k: Maximum number of results
            min_score: Entries scoring below this are dropped

        Returns:
            Up to k entries, highest score first. Equal scores keep KB
            insertion order (sorted() is stable).
        """
        if k <= 0:
            return []

        query_tokens = tokenize(query)
        scored = [
            ScoredEntry(entry=entry, score=similarity(query_tokens, tokenize(entry.question)))
            for entry in self.list_entries()
        ]
        ranked = sorted(
            (s for s in scored if s.score >= min_score),
            key=lambda s: s.score,
            reverse=True,
        )[:k]

        if ranked:
            best = ranked[0]
            logger.info(f"✓ KB hit {best.entry.id} ({best.score:.2f}): '{best.entry.question}'")
        else:
            logger.info(f"✗ No KB match for: '{query}'")
        return ranked

    def learn(
        self,
        help_request_id: Optional[str],
        question: str,
        answer: str,
    ) -> LearnResult:
        """
        Fold a resolved Q&A pair into the knowledge base

        Merges into the single best near-duplicate (score >= merge threshold)
        or inserts a new entry. Scan and write share one transaction.
        """
        if not (question or "").strip() or not (answer or "").strip():
            raise InvalidInput("Both question and answer are required to learn")

        with self.store.transaction() as tx:
            return self.learn_in(tx, help_request_id, question, answer)

    def learn_in(
        self,
        tx: StoreSession,
        help_request_id: Optional[str],
        question: str,
        answer: str,
    ) -> LearnResult:
        """Learn inside a caller-owned transaction; commits or rolls back with it"""
        question_tokens = tokenize(question)
        best: Optional[dict] = None
        best_score = 0.0
        for row in tx.list_table(TABLE):
            score = similarity(question_tokens, tokenize(row["question"]))
            if score > best_score:
                best, best_score = row, score

        now = utc_now()
        if best is not None and best_score >= self.merge_threshold:
            tx.update(TABLE, best["id"], {
                "question": question,
                "answer": answer,
                "updated_at": now,
                "last_help_request_id": help_request_id,
            })
            logger.info(f"📝 Updated KB entry {best['id']} ({best_score:.2f}): {question}")
            return LearnResult(entry_id=best["id"], created=False, score=best_score)

        entry_id = new_id("kb")
        tx.append(TABLE, {
            "id": entry_id,
            "question": question,
            "answer": answer,
            "created_at": now,
            "updated_at": now,
            "last_help_request_id": help_request_id,
        })
        logger.info(f"✨ Added new KB entry {entry_id}: {question}")
        return LearnResult(entry_id=entry_id, created=True, score=best_score)

    def get_entry(self, entry_id: str) -> KnowledgeEntry:
        row = self.store.find_by_id(TABLE, entry_id)
        if not row:
            raise NotFound(f"KB entry {entry_id} not found")
        return KnowledgeEntry.model_validate(row)

    def list_entries(self) -> List[KnowledgeEntry]:
        """All entries in insertion order"""
        return [KnowledgeEntry.model_validate(r) for r in self.store.list_table(TABLE)]

    def seed(self, items: List[SeedItem], clear_all: bool = False) -> int:
        """
        Replace the KB with seeded entries (admin)

        clear_all also wipes conversations, messages and help requests.
        """
        now = utc_now()
        with self.store.transaction() as tx:
            for table in (TABLES if clear_all else [TABLE]):
                tx.clear(table)
            for i, item in enumerate(items, start=1):
                tx.append(TABLE, {
                    "id": f"kb_seed_{i}",
                    "question": item.question.strip(),
                    "answer": item.answer.strip(),
                    "created_at": now,
                    "updated_at": now,
                    "last_help_request_id": None,
                })
        logger.info(f"Seeded knowledge base with {len(items)} entries")
        return len(items)

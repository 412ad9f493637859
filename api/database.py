"""
In-memory database and service layer for the FastAPI application.

Collections mimic the small subset of the MongoDB collection API the routes
need: ``find``, ``find_one``, ``insert_one``, ``update_one``, ``delete_one``
and ``count_documents``. Nothing is persisted beyond the process lifetime.
"""

import copy
import threading
from typing import Any, Dict, Iterable, List, Optional

import structlog

from api import seed_data
from api.auth import hash_password
from api.models import Book, User

logger = structlog.get_logger(__name__)


class NoMatchingItemError(LookupError):
    """Raised when a query matches no document."""

    def __init__(self, message: str = "No matching item found"):
        super().__init__(message)


class DuplicateKeyError(ValueError):
    """Raised when an insert would duplicate a unique key."""


class InMemoryCollection:
    """
    Ordered, lock-guarded list of documents.

    Documents are deep-copied on the way in and on the way out, so callers
    cannot change stored state except through the collection methods.
    """

    def __init__(
        self,
        name: str,
        documents: Iterable[Dict[str, Any]] = (),
        unique_key: Optional[str] = None
    ):
        self.name = name
        self.unique_key = unique_key
        self._documents: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

        for document in documents:
            self.insert_one(document)

    @staticmethod
    def _matches(document: Dict[str, Any], query: Optional[Dict[str, Any]]) -> bool:
        if not query:
            return True
        return all(key in document and document[key] == value for key, value in query.items())

    def _index_of(self, query: Dict[str, Any]) -> int:
        for index, document in enumerate(self._documents):
            if self._matches(document, query):
                return index
        raise NoMatchingItemError()

    def find(self, query: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Return copies of every matching document in insertion order."""
        with self._lock:
            return [copy.deepcopy(doc) for doc in self._documents if self._matches(doc, query)]

    def find_one(self, query: Dict[str, Any]) -> Dict[str, Any]:
        """
        Return a copy of the first matching document.

        Raises:
            NoMatchingItemError: If nothing matches
        """
        with self._lock:
            return copy.deepcopy(self._documents[self._index_of(query)])

    def insert_one(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """
        Append a document.

        Raises:
            DuplicateKeyError: If the unique key value is already present
        """
        stored = copy.deepcopy(document)
        with self._lock:
            if self.unique_key is not None:
                value = stored.get(self.unique_key)
                if any(doc.get(self.unique_key) == value for doc in self._documents):
                    raise DuplicateKeyError(
                        f"{self.name}: duplicate value for '{self.unique_key}': {value!r}"
                    )
            self._documents.append(stored)
            return copy.deepcopy(stored)

    def update_one(self, query: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge ``changes`` into the first matching document.

        Raises:
            NoMatchingItemError: If nothing matches
        """
        with self._lock:
            document = self._documents[self._index_of(query)]
            document.update(copy.deepcopy(changes))
            return copy.deepcopy(document)

    def delete_one(self, query: Dict[str, Any]) -> Dict[str, Any]:
        """
        Remove the first matching document and return it.

        Raises:
            NoMatchingItemError: If nothing matches
        """
        with self._lock:
            return copy.deepcopy(self._documents.pop(self._index_of(query)))

    def count_documents(self, query: Optional[Dict[str, Any]] = None) -> int:
        with self._lock:
            return sum(1 for doc in self._documents if self._matches(doc, query))


class InMemoryDatabase:
    """The two collections backing the API."""

    def __init__(self):
        self.books = InMemoryCollection("books", unique_key="id")
        self.users = InMemoryCollection("users", unique_key="email")


def create_database(seed: bool = True, bcrypt_rounds: Optional[int] = None) -> InMemoryDatabase:
    """
    Build a fresh in-memory database.

    Args:
        seed: Load the demo books and users
        bcrypt_rounds: Cost factor used to hash the demo passwords

    Returns:
        The new database
    """
    database = InMemoryDatabase()
    if not seed:
        return database

    for book in seed_data.BOOKS:
        database.books.insert_one(book)

    for user in seed_data.USERS:
        database.users.insert_one({
            **user,
            "password": hash_password(user["password"], rounds=bcrypt_rounds),
        })

    logger.info(
        "Seeded in-memory database",
        books=database.books.count_documents(),
        users=database.users.count_documents()
    )
    return database


class APIDatabaseService:
    """Database service for API operations."""

    def __init__(self, database: InMemoryDatabase):
        self.database = database
        self.books_collection = database.books
        self.users_collection = database.users

    async def get_books(self) -> List[Book]:
        """Get every book in insertion order."""
        try:
            return [Book(**doc) for doc in self.books_collection.find()]
        except Exception as e:
            logger.error("Failed to get books", error=str(e))
            raise

    async def get_book_by_id(self, book_id: int) -> Optional[Book]:
        """
        Get a single book by ID.

        Args:
            book_id: Book identifier

        Returns:
            Book if found, None otherwise
        """
        try:
            return Book(**self.books_collection.find_one({"id": book_id}))
        except NoMatchingItemError:
            return None
        except Exception as e:
            logger.error("Failed to get book by ID", book_id=book_id, error=str(e))
            raise

    async def add_book(self, book: Book) -> Book:
        """
        Insert a new book.

        Raises:
            DuplicateKeyError: If a book with the same id exists
        """
        stored = self.books_collection.insert_one(book.model_dump())
        logger.info("Book added", book_id=book.id)
        return Book(**stored)

    async def update_book(self, book_id: int, changes: Dict[str, Any]) -> bool:
        """
        Update fields of an existing book.

        Returns:
            True if updated, False if no book has that id
        """
        try:
            self.books_collection.update_one({"id": book_id}, changes)
        except NoMatchingItemError:
            return False
        logger.info("Book updated", book_id=book_id, fields=sorted(changes))
        return True

    async def delete_book(self, book_id: int) -> bool:
        """
        Delete a book.

        Returns:
            True if deleted, False if no book has that id
        """
        try:
            self.books_collection.delete_one({"id": book_id})
        except NoMatchingItemError:
            return False
        logger.info("Book deleted", book_id=book_id)
        return True

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email, or None if not registered."""
        try:
            return User(**self.users_collection.find_one({"email": email}))
        except NoMatchingItemError:
            return None

    async def create_user(self, email: str, password_hash: str) -> User:
        """
        Store a new user with no security questions.

        Raises:
            DuplicateKeyError: If the email is already registered
        """
        user = User(email=email, password=password_hash)
        self.users_collection.insert_one(user.model_dump(by_alias=True))
        logger.info("User registered", email=email)
        return user

    async def update_user_password(self, email: str, password_hash: str) -> bool:
        """
        Replace a user's password hash.

        Returns:
            True if updated, False if the user does not exist
        """
        try:
            self.users_collection.update_one({"email": email}, {"password": password_hash})
        except NoMatchingItemError:
            return False
        logger.info("User password updated", email=email)
        return True

    async def health_check(self) -> Dict:
        """
        Report collection sizes.

        Returns:
            Dictionary with health status
        """
        try:
            return {
                "status": "healthy",
                "books_count": self.books_collection.count_documents(),
                "users_count": self.users_collection.count_documents()
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }

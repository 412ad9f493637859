"""
Demo records loaded into the in-memory database on startup.
"""

BOOKS = [
    {"id": 1, "title": "The Fellowship of the Ring", "author": "J.R.R. Tolkien"},
    {"id": 2, "title": "Harry Potter and the Philosopher's Stone", "author": "J.K. Rowling"},
    {"id": 3, "title": "The Two Towers", "author": "J.R.R. Tolkien"},
    {"id": 4, "title": "Harry Potter and the Chamber of Secrets", "author": "J.K. Rowling"},
    {"id": 5, "title": "The Return of the King", "author": "J.R.R. Tolkien"},
]

# Plaintext passwords are hashed when the database is built
USERS = [
    {
        "email": "harry@hogwarts.edu",
        "password": "potter",
        "securityQuestions": [
            {"answer": "Hedwig"},
            {"answer": "Quidditch Through the Ages"},
            {"answer": "Evans"},
        ],
    },
    {
        "email": "hermione@hogwarts.edu",
        "password": "granger",
        "securityQuestions": [
            {"answer": "Crookshanks"},
            {"answer": "Hogwarts: A History"},
            {"answer": "Granger"},
        ],
    },
]

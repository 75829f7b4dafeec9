"""Built-in book lists used by 'Use Mock Data Instead'."""
from ..engine.models import RawRow

TEXTBOOKS_MOCK = [
    RawRow(row_id=1, book_name='Physics Part 1', subject='Physics', price=150),
    RawRow(row_id=2, book_name='Chemistry Part 1', subject='Chemistry', price=160),
    RawRow(row_id=3, book_name='Mathematics', subject='Math', price=180),
    RawRow(row_id=4, book_name='English Reader', subject='English', price=120),
    RawRow(row_id=5, book_name='Computer Science', subject='Computers', price=135),
]

NOTEBOOKS_MOCK = [
    RawRow(row_id=1, book_name='Single Line A4 Notebook', subject='General', price=40),
    RawRow(row_id=2, book_name='Graph Book', subject='Math', price=35),
    RawRow(row_id=3, book_name='Unruled A5 Sketchbook', subject='Drawing', price=30),
    RawRow(row_id=4, book_name='Practical Journal', subject='Science', price=55),
]

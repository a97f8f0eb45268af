"""
Book catalog: genres, authors and books.

The catalog service owns the genres, authors and books collections and
refuses to delete genres or authors that books still reference.
"""

"""Il Prezzo Giusto listing ingestion, storage and gameplay queries."""

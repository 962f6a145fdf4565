"""Engine data model: passages, puzzles, session state and action results."""

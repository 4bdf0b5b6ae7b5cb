"""render_scout.parser: статические сигналы разметки и классификация скриптов."""

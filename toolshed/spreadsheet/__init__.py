"""A spreadsheet engine with formulas, dependency tracking, evaluation and a demo."""
"""

If you know how to filter models in LoopBack, you can query your CouchDB database with the same language.
MangoQuery translates LoopBack filters into [Mango queries](https://docs.couchdb.org/en/stable/api/database/find.html)
and fetches every page of the results.

The Query Object will let you sort, filter, paginate, and project fields:

```python
{
  'fields': ['id', 'name'],  # Only fetch these fields
  'order': ['age ASC'],  # Sort by age, ascending
  'where': {
    # Filter condition
    'sex': 'female',  # Girls
    'age': {'gte': 18},  # Age >= 18
  },
  'limit': 100,  # Display 100 per page
  'skip': 10,  # Skip first 10 documents
}
```

Query Object Syntax
-------------------

* `where`: [Where Operation](#where-operation) filters the results, using your criteria
* `order`: [Order Operation](#order-operation) determines the sorting of the results
* `fields`: [Fields Operation](#fields-operation) selects the fields to be loaded
* `skip`, `offset`, `limit`: [Rows slicing](#slice-operation): paginates the results

Detailed syntax for every operation is provided in the relevant sections.
"""

from .filter import MangoFilter, DEFAULT_MODEL_INDEX
from .sort import MangoSort
from .project import MangoProject
from .limit import MangoLimit
from .operators import OperatorTranslator, RegexLiteral, translate_operator, to_pcre
from .paths import resolve_array_path, unfold_path

# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py migrate --db farmacia.db
  python app.py importar produtos produtos.xlsx
  python app.py importar lotes lotes.xlsx
  python app.py lotes listar <produto_id>
  python app.py promocao aplicavel <produto_id> --lote <lote_id>
  python app.py venda nova
"""

from farmacia.adapters.cli import main

if __name__ == "__main__":
    main()

# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py migrate --db farmacia.db
  python app.py categoria add Analgésicos
  python app.py medicamento add --nome Dipirona --dosagem 500mg --preco 10,50 --validade 31/12/2027 --categoria 1
  python app.py estoque entrada 1 50
  python app.py venda --item 1:2 --cliente 1
  python app.py entrada-lotes entradas.xlsx
  python app.py alertas
"""

from farmacia.adapters.cli import main

if __name__ == "__main__":
    main()
